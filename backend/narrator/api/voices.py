from typing import List

from fastapi import APIRouter

from narrator.schemas.api import Voice

router = APIRouter(tags=["voices"])

VOICES = [
    Voice(id="alloy", name="Alloy", language="en"),
    Voice(id="echo", name="Echo", language="en"),
    Voice(id="fable", name="Fable", language="en"),
    Voice(id="onyx", name="Onyx", language="en"),
    Voice(id="nova", name="Nova", language="en"),
    Voice(id="shimmer", name="Shimmer", language="en"),
]


@router.get('/voices', response_model=List[Voice])
def list_voices():
    return VOICES
