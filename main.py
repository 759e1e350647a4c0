"""CLI entrypoint — run the server."""

import argparse

from dotenv import load_dotenv

load_dotenv()  # Load .env into os.environ before anything else

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Chat Supervisor avatar backend")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=3000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for uvicorn")
    args = parser.parse_args()

    from core.config import get_settings

    settings = get_settings()
    log_level = (args.log_level or settings.log_level).lower()

    print(f"Starting Chat Supervisor ({settings.company_name}) on http://{args.host}:{args.port}")

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
