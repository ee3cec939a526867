"""Start the Video Narrator API with uvicorn.

  python run_api.py --port 8000 --workers 4 --log-level debug

--log-level sets both uvicorn's and the app's LOG_LEVEL; --workers sets
PIPELINE_WORKERS (concurrent pipelines, not uvicorn processes). Other settings
come from the environment or .env. backend/ is put on sys.path so 'narrator'
imports without an editable install.
"""
import os, sys, argparse, pathlib, uvicorn

BACKEND_DIR = pathlib.Path(__file__).parent.resolve() / 'backend'
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


def main():
  parser = argparse.ArgumentParser(description='Video Narrator API')
  parser.add_argument('--host', default='127.0.0.1')
  parser.add_argument('--port', type=int, default=8000)
  parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'])
  parser.add_argument('--workers', type=int, help='pipelines run concurrently (PIPELINE_WORKERS)')
  parser.add_argument('--reload', action='store_true')
  args = parser.parse_args()

  os.environ['LOG_LEVEL'] = args.log_level.upper()
  if args.workers:
    os.environ['PIPELINE_WORKERS'] = str(args.workers)

  uvicorn.run('narrator.main:app', host=args.host, port=args.port,
              log_level=args.log_level, reload=args.reload)


if __name__ == '__main__':
  main()
