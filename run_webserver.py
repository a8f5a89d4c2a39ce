"""
Run Webserver - Startup Script
Server launcher for the fingerprint verification API.
"""

import argparse
import os


def main():
    """Start server."""
    parser = argparse.ArgumentParser(description="Fingerprint Verification WebServer")
    parser.add_argument("--host", help="Server host")
    parser.add_argument("--port", type=int, help="Server port")
    parser.add_argument("--workers", type=int, help="Number of uvicorn workers")
    parser.add_argument("--store", choices=["sqlite", "dynamodb"], help="Record store backend")
    parser.add_argument("--data-dir", help="Directory for the database and logs")

    args = parser.parse_args()

    # Config is read at import time, so environment overrides go first
    if args.store:
        os.environ["FINGERAUTH_RECORD_STORE"] = args.store
    if args.data_dir:
        os.environ["FINGERAUTH_DATA_DIR"] = args.data_dir

    from fingerauth.webserver.config import HOST, PORT, RECORD_STORE, DB_PATH

    host = args.host or HOST
    port = args.port or PORT

    print()
    print("=" * 70)
    print("STARTING FINGERPRINT VERIFICATION WEBSERVER")
    print("=" * 70)
    print()
    print(f"🚀 Server starting on {host}:{port}")
    print(f"   Record store: {RECORD_STORE}" + (f" ({DB_PATH})" if RECORD_STORE == "sqlite" else ""))
    print(f"   Workers: {args.workers or 1}")
    print()
    print(f"📚 API Docs: http://localhost:{port}/docs")
    print()
    print("Press CTRL+C to stop")
    print("=" * 70)
    print()

    import uvicorn

    try:
        uvicorn.run(
            "fingerauth.webserver.server:app",
            host=host,
            port=port,
            reload=False,
            workers=args.workers or 1,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n\nShutting down...")


if __name__ == "__main__":
    main()
