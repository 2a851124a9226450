#!/usr/bin/env python3
"""
API entrypoint - serves the Mission Control HTTP API with uvicorn.
"""

import argparse
import sys

import dotenv
dotenv.load_dotenv()

import uvicorn

from mission_control.core.config import debug_enabled, validate_ops_config


def main():
    parser = argparse.ArgumentParser(description='Serve the Mission Control ops API')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=8000, help='Port to serve on (default: 8000)')
    args = parser.parse_args()

    for issue in validate_ops_config():
        print(f"⚠️  {issue}")

    uvicorn.run(
        "mission_control.api.main:app",
        host=args.host,
        port=args.port,
        reload=debug_enabled(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
