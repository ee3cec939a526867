from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, ForeignKey
from narrator.db.database import Base


class MediaItemRow(Base):
    __tablename__ = 'media_items'
    id = Column(String(36), primary_key=True)
    title = Column(String, nullable=False)
    source_kind = Column(String(16), nullable=True)  # remote|upload
    source_ref = Column(Text, nullable=True)  # url or uploaded file name
    duration = Column(Integer, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default='uploading', index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class SummaryRow(Base):
    __tablename__ = 'summaries'
    id = Column(String(36), primary_key=True)
    # one summary per media item
    media_item_id = Column(String(36), ForeignKey('media_items.id', ondelete='CASCADE'), nullable=False, unique=True)
    content = Column(Text, nullable=False, default='')
    style = Column(String(16), nullable=False)
    target_duration = Column(Integer, nullable=False)
    voice_id = Column(String, nullable=False)
    speech_speed = Column(String(8), nullable=False, default='1.0')
    audio_url = Column(Text, nullable=True)
    final_video_url = Column(Text, nullable=True)
    is_edited = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ProcessingJobRow(Base):
    __tablename__ = 'processing_jobs'
    id = Column(String(36), primary_key=True)
    media_item_id = Column(String(36), ForeignKey('media_items.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(String(16), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    current_step = Column(String(32), nullable=True)
    error = Column(Text, nullable=True)
    result = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
