# ============================================================================
# src/lab_ingestion/cli.py
# ============================================================================
"""
lab-ingest command line

    lab-ingest process report1.pdf report2.png --priority high
    lab-ingest recover
    lab-ingest show <document_id>
    lab-ingest accept <document_id> <group_id>=<candidate_id> ...
"""

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from .config import base_settings, logging_settings
from .core.context import DocumentStatus, HealthDocument, ProcessingPriority
from .core.document_store import SQLiteDocumentStore
from .core.mapping_service import LabMappingService
from .core.processing_queue import DocumentProcessingQueue
from .extractors import DoclingClient
from .llm import create_client
from .utils import LabIngestionError, get_logger, setup_logging


logger = get_logger(__name__)


def document_id_for(path: Path) -> str:
    """Stable id so reprocessing a file updates the same record."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, path.resolve().as_uri()))


async def _run_queue(store: SQLiteDocumentStore, documents: List[HealthDocument], priority, recover: bool) -> int:
    structuring = DoclingClient()
    completion = create_client()
    queue = DocumentProcessingQueue(structuring, LabMappingService(completion), store)

    try:
        if recover:
            await queue.recover()
        if documents:
            await queue.add_batch(documents, priority)
        tracked = {item.document_id: item.document.file_name for item in queue.snapshot()}

        await queue.start()
        await queue.join()
        await queue.stop()
    finally:
        await structuring.close()
        await completion.close()

    failed = 0
    for document_id, file_name in tracked.items():
        status = store.get_status(document_id)
        if status is None:
            continue
        state, last_error = status
        line = f"{file_name:<40} {state.value:<10} {document_id}"
        if state == DocumentStatus.FAILED:
            failed += 1
            line += f"  ({last_error})"
        print(line)

    print(f"\n{len(tracked) - failed}/{len(tracked)} documents processed")
    return 1 if failed else 0


def _cmd_process(args, store: SQLiteDocumentStore) -> int:
    documents = []
    for name in args.files:
        path = Path(name)
        if not path.is_file():
            print(f"ERROR: File not found: {path}", file=sys.stderr)
            return 2
        documents.append(HealthDocument(document_id=document_id_for(path), file_path=path))

    priority = ProcessingPriority[args.priority.upper()]
    return asyncio.run(_run_queue(store, documents, priority, recover=False))


def _cmd_recover(args, store: SQLiteDocumentStore) -> int:
    return asyncio.run(_run_queue(store, [], ProcessingPriority.NORMAL, recover=True))


def _cmd_show(args, store: SQLiteDocumentStore) -> int:
    status = store.get_status(args.document_id)
    if status is None:
        print(f"ERROR: Unknown document: {args.document_id}", file=sys.stderr)
        return 1

    state, last_error = status
    payload = {
        "document_id": args.document_id,
        "status": state.value,
        "last_error": last_error,
        "draft": store.get_draft_mapping_result(args.document_id),
        "lab_report": store.get_lab_report(args.document_id),
    }
    print(json.dumps(payload, indent=2, default=str))
    return 0


def parse_selections(pairs: List[str]) -> Dict[str, Optional[str]]:
    """GROUP=CANDIDATE pairs; GROUP=none clears that group's selection."""
    selections: Dict[str, Optional[str]] = {}
    for pair in pairs:
        group_id, sep, candidate_id = pair.partition("=")
        if not sep or not group_id or not candidate_id:
            raise ValueError(f"Expected GROUP=CANDIDATE, got {pair!r}")
        selections[group_id] = None if candidate_id.lower() == "none" else candidate_id
    return selections


def _cmd_accept(args, store: SQLiteDocumentStore) -> int:
    try:
        selections = parse_selections(args.selections)
        report = store.complete_review(args.document_id, selections)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print(f"Accepted {report.summary} for {args.document_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lab-ingest", description="Ingest laboratory reports")
    parser.add_argument("--db", type=Path, help="Document database path")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    process = sub.add_parser("process", help="Queue files and process them to completion")
    process.add_argument("files", nargs="+", help="Lab report files (PDF or image)")
    process.add_argument(
        "--priority",
        choices=[p.name.lower() for p in ProcessingPriority],
        default="normal",
    )
    process.set_defaults(handler=_cmd_process)

    recover = sub.add_parser("recover", help="Re-process documents left queued by a previous run")
    recover.set_defaults(handler=_cmd_recover)

    show = sub.add_parser("show", help="Print the stored draft for a document")
    show.add_argument("document_id")
    show.set_defaults(handler=_cmd_show)

    accept = sub.add_parser("accept", help="Complete review and store the lab report")
    accept.add_argument("document_id")
    accept.add_argument("selections", nargs="*", metavar="GROUP=CANDIDATE")
    accept.set_defaults(handler=_cmd_accept)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        level=args.log_level or logging_settings.LOG_LEVEL,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_JSON,
    )
    if args.db is None:
        base_settings.create_directories()

    try:
        store = SQLiteDocumentStore(args.db)
        return args.handler(args, store)
    except LabIngestionError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
