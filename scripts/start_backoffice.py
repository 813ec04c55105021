#!/usr/bin/env python3
"""
Startup script for the Repair Desk back office
Connects to the hosted backend, bootstraps the admin account and serves the API
"""

import os
import sys
import asyncio
import argparse
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from repair_desk.config import get_settings  # noqa: E402
from repair_desk.logging_conf import configure_logging  # noqa: E402


def setup_logging(log_level: str = "INFO", json_logs: bool = False):
    """Set up logging configuration."""
    # JSON lines go to stdout only; text logs are also kept in logs/backoffice.log
    log_file = None if json_logs else project_root / "logs" / "backoffice.log"
    configure_logging(log_level, json_logs=json_logs, log_file=log_file)


def check_environment() -> bool:
    """Check environment variables"""
    missing_vars = [var for var in ("SUPABASE_URL", "SUPABASE_ANON_KEY") if not os.getenv(var)]
    if missing_vars:
        print(f"❌ Missing required environment variables: {', '.join(missing_vars)}")
        print("Set them in your .env file or environment")
        return False
    print("✅ All required environment variables are set")

    if not os.getenv("ADMIN_PASSWORD"):
        print("ℹ️  ADMIN_PASSWORD not set: admin account bootstrap will be skipped")
    return True


async def serve(host: str, port: int):
    import uvicorn

    from repair_desk.api import create_app
    from repair_desk.backoffice import BackOffice

    settings = get_settings()
    backoffice = await BackOffice.connect(settings)
    await backoffice.start()

    print(f"🚀 Starting Repair Desk on {host}:{port}")
    print(f"📊 Health check: http://{host}:{port}/")

    server = uvicorn.Server(uvicorn.Config(create_app(backoffice), host=host, port=port, log_level="info"))
    await server.serve()


def main():
    """Main entry point"""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Start the Repair Desk back office")
    parser.add_argument("--host", default=settings.HOST, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to bind to")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--check-only", action="store_true", help="Only check the environment and exit")

    args = parser.parse_args()

    setup_logging(args.log_level, args.json_logs)

    print("🔧 Repair Desk Startup")
    print("=" * 45)

    print("🔧 Checking environment...")
    if not check_environment():
        sys.exit(1)

    if args.check_only:
        print("✅ All checks passed!")
        return

    try:
        asyncio.run(serve(args.host, args.port))
    except KeyboardInterrupt:
        print("👋 Stopped")
    except Exception as e:
        print(f"❌ Failed to start back office: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
