import argparse
import logging
import os
import sys
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marginalia import __version__
from marginalia.config import get_settings
from marginalia.dependencies import get_highlight_engine
from marginalia.routers import documents, highlights, views
from marginalia.services import ArchiveService

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Marginalia", version=__version__)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    logger.info(f">>> Incoming request: {request.method} {request.url.path}")
    if request.client:
        logger.debug(f">>> Client: {request.client.host}:{request.client.port}")

    try:
        response = await call_next(request)
        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"<<< Response: {request.method} {request.url.path} - Status: {response.status_code} - Duration: {duration:.3f}s"
        )
        return response
    except Exception as e:
        duration = (datetime.now() - start_time).total_seconds()
        logger.error(
            f"!!! Request failed: {request.method} {request.url.path} - Duration: {duration:.3f}s - Error: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500, content={"detail": f"Internal server error: {str(e)}"}
        )


@app.get("/health")
async def health_check():
    logger.info("Health check endpoint accessed")
    return {"status": "healthy"}


# Include routers
app.include_router(highlights.router)
app.include_router(documents.router)
app.include_router(views.router)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.path:
        if not os.path.isdir(args.path):
            print(f"Not a directory: {args.path}", file=sys.stderr)
            return 1
        os.environ["MARGINALIA_DOCS_DIR"] = os.path.abspath(args.path)
        get_settings.cache_clear()
        get_highlight_engine.cache_clear()

    settings = get_settings()
    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port
    logger.info(f"Serving {settings.docs_dir} on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
    return 0


def _archive(args: argparse.Namespace) -> int:
    archive = ArchiveService(get_settings().archive_dir)

    if args.archive_command == "list":
        files = archive.list_archive_files()
        if not files:
            print("Archive is empty")
            return 0
        for entry in files:
            print(f"{entry.resource_id[:12]}  {entry.timestamp}  {entry.size:>8}  {entry.resource_path}")
        return 0

    if args.archive_command == "show":
        details = archive.get_archive_file_details(args.path)
        if details is None:
            print(f"No archived copy of {args.path}", file=sys.stderr)
            return 1
        print(details.content, end="")
        return 0

    if not args.yes:
        answer = input("Delete every archived document? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 1
    result = archive.clear_archive()
    print(f"Deleted {result.deleted_count} files, freed {result.freed_bytes} bytes")
    return 0


def _export(args: argparse.Namespace) -> int:
    settings = get_settings()
    engine = get_highlight_engine()
    target = engine.export_directory(args.directory, settings.export_dir)
    print(f"Exported highlights to {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marginalia", description="Markdown viewer with persistent highlights"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Serve a directory of Markdown files")
    serve.add_argument("path", nargs="?", help="Directory to serve")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=_serve)

    archive = subparsers.add_parser("archive", help="Inspect archived originals")
    archive_sub = archive.add_subparsers(dest="archive_command", required=True)
    archive_sub.add_parser("list", help="List archived documents")
    show = archive_sub.add_parser("show", help="Print an archived document")
    show.add_argument("path", help="Document path, file name or id prefix")
    clear = archive_sub.add_parser("clear", help="Delete every archived document")
    clear.add_argument("--yes", action="store_true", help="Skip the confirmation")
    archive.set_defaults(handler=_archive)

    export = subparsers.add_parser("export", help="Export highlights as Markdown")
    export.add_argument("directory", help="Directory relative to the served root")
    export.set_defaults(handler=_export)

    return parser


def cli(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(cli())
