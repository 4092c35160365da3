"""CLI entry point for the uniadmin API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="uniadmin-server",
        description="University administration API: organizational hierarchy and users",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--reload", action="store_true", help="Reload on source changes")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, in-memory cache, console logs",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["UNIADMIN_LOCAL_MODE"] = "1"
        os.environ["UNIADMIN_LOCAL"] = "1"

    import uvicorn

    uvicorn.run("uniadmin.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
