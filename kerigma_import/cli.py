"""Command line interface for importing a person CSV without the HTTP layer."""
from __future__ import annotations

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path

from .config import configure_logging, get_settings
from .errors import ConfigurationError, ImportAbortedError
from .importer import PessoaImporter
from .rules import CSV_TEMPLATE
from .store import InMemoryStore, SupabaseStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import people from a CSV file into Kerigma Hub")
    parser.add_argument("input", nargs="?", help="Path to the CSV/TSV file")
    parser.add_argument(
        "--template",
        action="store_true",
        help="Print a sample CSV with the recognised columns and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and normalize rows without writing them to the database",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Access token of the importing user (sent as 'Authorization: Bearer <token>')",
    )
    parser.add_argument(
        "--show-rows",
        action="store_true",
        help="In dry-run mode, include the normalized rows in the output",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING); defaults to LOG_LEVEL",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.template:
        sys.stdout.write(CSV_TEMPLATE)
        return 0
    if not args.input:
        logging.error("An input file is required unless --template is given")
        return 2

    settings = get_settings()
    path = Path(args.input)
    if not path.is_file():
        logging.error("Input file %s does not exist", path)
        return 1

    if args.dry_run:
        store = InMemoryStore()
    else:
        authorization = f"Bearer {args.token}" if args.token else None
        try:
            store = SupabaseStore(settings=settings, authorization=authorization)
        except ConfigurationError as exc:
            logging.error("%s", exc)
            return 1

    importer = PessoaImporter(store, placeholder_domain=settings.placeholder_email_domain)
    mimetype = mimetypes.guess_type(path.name)[0] or ""
    try:
        result = importer.import_bytes(path.read_bytes(), filename=path.name, mimetype=mimetype)
    except ImportAbortedError as exc:
        logging.error("Import aborted: %s", exc)
        return 1
    finally:
        if isinstance(store, SupabaseStore):
            store.close()

    output = result.model_dump(exclude_none=True)
    if args.dry_run and args.show_rows:
        output["rows"] = store.rows
    print(json.dumps(output, ensure_ascii=False, indent=2))
    logging.info("Processed %s rows from %s", result.success + result.errors, path.resolve())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
