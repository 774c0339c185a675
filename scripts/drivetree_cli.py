#!/usr/bin/env python3
"""
A tiny CLI to interact with the Drive Tree API locally.

Usage examples:
  python scripts/drivetree_cli.py auth google-start
  python scripts/drivetree_cli.py tree --folder root --file-type application/pdf
  python scripts/drivetree_cli.py files --folder 1AbC --include-folders --property properties:status=done
  python scripts/drivetree_cli.py download --file-id 1XyZ --export-format docx --out report.docx
  python scripts/drivetree_cli.py search folders --filter invoices --sort-order modifiedDesc
  python scripts/drivetree_cli.py job --operation tree --folder root

Notes:
- This CLI calls the local FastAPI server at http://localhost:8000.
- Pass --token to use a specific access token; otherwise the server uses its stored credentials.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import requests

API_BASE = "http://localhost:8000"


def _headers(args: argparse.Namespace) -> dict:
    return {"Authorization": f"Bearer {args.token}"} if args.token else {}


def parse_property_filter(raw: str) -> dict:
    """Parse ``[namespace:]key=value`` into a property filter."""
    namespace = "properties"
    if ":" in raw.split("=", 1)[0]:
        namespace, raw = raw.split(":", 1)
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {raw!r}")
    key, value = raw.split("=", 1)
    if namespace not in ("properties", "appProperties"):
        raise argparse.ArgumentTypeError(f"Unknown property namespace {namespace!r}")
    return {"propertyType": namespace, "key": key, "value": value}


def build_parameters(args: argparse.Namespace) -> dict:
    options: dict = {"propertiesToReturn": args.properties}
    if args.query:
        options["queryString"] = args.query
    if args.fields:
        options["fieldsToReturn"] = args.fields.split(",")
    if args.include_permissions:
        options["includePermissions"] = True
    return {
        "folder": {"mode": "id", "value": args.folder},
        "includeFolders": getattr(args, "include_folders", False),
        "filters": {
            "fileTypes": args.file_type or [],
            "propertyFilters": args.property or [],
        },
        "options": options,
    }


def cmd_auth_google_start(args: argparse.Namespace) -> int:
    url = f"{API_BASE}/auth/google/start"
    params = {}
    if args.desired_return_url:
        params["desired_return_url"] = args.desired_return_url
    r = requests.get(url, params=params, timeout=15)
    r.raise_for_status()
    print(r.json()["redirect_url"])  # the authorization URL to open in browser
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    r = requests.post(f"{API_BASE}/drive/tree", json=build_parameters(args), headers=_headers(args), timeout=None)
    r.raise_for_status()
    print(json.dumps(r.json(), indent=2))
    return 0


def cmd_files(args: argparse.Namespace) -> int:
    r = requests.post(f"{API_BASE}/drive/files", json=build_parameters(args), headers=_headers(args), timeout=None)
    r.raise_for_status()
    print(json.dumps(r.json(), indent=2))
    return 0


def cmd_download(args: argparse.Namespace) -> int:
    params = {"export_format": args.export_format} if args.export_format else {}
    r = requests.get(
        f"{API_BASE}/drive/files/{args.file_id}/content",
        params=params,
        headers=_headers(args),
        timeout=None,
    )
    r.raise_for_status()
    out = Path(args.out) if args.out else Path(args.file_id)
    out.write_bytes(r.content)
    print(f"Wrote {len(r.content)} bytes to {out}")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    params = {}
    if args.filter:
        params["filter"] = args.filter
    if args.kind == "folders":
        params["sort_order"] = args.sort_order
    else:
        params["folder_id"] = args.folder
    r = requests.get(f"{API_BASE}/drive/search/{args.kind}", params=params, headers=_headers(args), timeout=60)
    r.raise_for_status()
    for result in r.json():
        print(f"{result['value']}\t{result['name']}")
    return 0


def cmd_job(args: argparse.Namespace) -> int:
    parameters = build_parameters(args)
    parameters["operation"] = args.operation
    r = requests.post(f"{API_BASE}/drive/jobs", json={"parameters": parameters, "access_token": args.token}, timeout=15)
    r.raise_for_status()
    print(json.dumps(r.json(), indent=2))
    return 0


def _add_traversal_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--folder", default="root")
    p.add_argument("--file-type", action="append", dest="file_type", help="MIME type to keep (repeatable)")
    p.add_argument("--property", action="append", type=parse_property_filter, help="[namespace:]key=value (repeatable)")
    p.add_argument("--query", default=None, help="Drive query string applied to the collected entries")
    p.add_argument("--fields", default=None, help="Comma separated fields to request")
    p.add_argument("--properties", default="both", choices=["both", "properties", "appProperties", "none"])
    p.add_argument("--include-permissions", action="store_true")


def main() -> int:
    parser = argparse.ArgumentParser(prog="drivetree")
    parser.add_argument("--token", default=None, help="Google access token")
    sub = parser.add_subparsers(dest="cmd")

    p_auth = sub.add_parser("auth")
    sub_auth = p_auth.add_subparsers(dest="auth_cmd")
    p_auth_start = sub_auth.add_parser("google-start")
    p_auth_start.add_argument("--desired-return-url", dest="desired_return_url")
    p_auth_start.set_defaults(func=cmd_auth_google_start)

    p_tree = sub.add_parser("tree")
    _add_traversal_args(p_tree)
    p_tree.set_defaults(func=cmd_tree)

    p_files = sub.add_parser("files")
    _add_traversal_args(p_files)
    p_files.add_argument("--include-folders", action="store_true")
    p_files.set_defaults(func=cmd_files)

    p_download = sub.add_parser("download")
    p_download.add_argument("--file-id", required=True)
    p_download.add_argument("--export-format", default=None, help="e.g. pdf, docx, csv, png")
    p_download.add_argument("--out", default=None)
    p_download.set_defaults(func=cmd_download)

    p_search = sub.add_parser("search")
    p_search.add_argument("kind", choices=["folders", "files"])
    p_search.add_argument("--filter", default=None)
    p_search.add_argument("--folder", default="root")
    p_search.add_argument(
        "--sort-order",
        default="nameAsc",
        choices=["createdDesc", "createdAsc", "modifiedDesc", "modifiedAsc", "nameAsc", "nameDesc"],
    )
    p_search.set_defaults(func=cmd_search)

    p_job = sub.add_parser("job")
    _add_traversal_args(p_job)
    p_job.add_argument("--operation", default="tree", choices=["tree", "fileList"])
    p_job.add_argument("--include-folders", action="store_true")
    p_job.set_defaults(func=cmd_job)

    args = parser.parse_args()
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        return args.func(args)
    except requests.HTTPError as e:
        print(f"HTTP error: {e}\n{e.response.text if e.response is not None else ''}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
