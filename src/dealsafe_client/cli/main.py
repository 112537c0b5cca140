from __future__ import annotations

import argparse
import os
import sys
from typing import Sequence

from ..auth.otp import format_phone_number, normalize_phone_number
from ..errors import DealSafeError, ValidationFailure
from ..logging import get_logger
from ..notify import ConsoleNotifier
from ..orchestrator import (
    DropFolderShareSource,
    IngestFlow,
    LocalFilePicker,
    build_flow_config,
    log_environment_banner,
)
from ..orchestrator.batch import BatchReport
from ..domain.models import ShareEvent

LOG = get_logger("cli-main")


class _UrlShare:
    """One-shot share source for `dealsafe share-url`."""

    def __init__(self, url: str) -> None:
        self._event = ShareEvent(web_url=url)

    @property
    def has_event(self) -> bool:
        return self._event is not None

    @property
    def payload(self):
        return self._event

    @property
    def error(self):
        return None

    def acknowledge(self) -> None:
        self._event = None


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base-url", help="Override backend base URL (defaults to env/.env)")
    p.add_argument("--state-dir", help="Directory for session and converted images (default: var/ at repo root)")
    p.add_argument("--insecure", action="store_true", help="Disable TLS verification")
    p.add_argument("--timeout", type=int, default=None, help="HTTP timeout in seconds")


def _build_flow(ns: argparse.Namespace) -> IngestFlow:
    config = build_flow_config(ns, script_dir=os.getcwd())
    flow = IngestFlow(config, notifier=ConsoleNotifier())
    flow.start()
    return flow


def _print_report(report: BatchReport | None) -> int:
    if report is None:
        return 1
    for v in report.successes:
        print(f"{v.id}\t{'valid' if v.is_valid else 'invalid'}\t{v.title()}")
    if report.aborted:
        return 3
    return 0 if not report.failures else 2


def _login(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    number = flow.auth.request_otp(ns.phone)
    print(f"Code sent to +45 {format_phone_number(normalize_phone_number(number))}")
    return 0


def _verify(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    session = flow.auth.verify_otp(ns.phone, ns.code)
    print(f"Logged in as {session.user.phone_number}")
    return 0


def _logout(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    flow.auth.logout()
    print("Logged out")
    return 0


def _list(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    if not flow.sessions.is_authenticated:
        LOG.error("Not logged in. Run `dealsafe login` first.")
        return 1
    for v in flow.store.vouchers:
        status = "valid" if v.is_valid else f"invalid ({v.rejection_reason or 'unknown'})"
        print(f"{v.id}\t{status}\t{v.redemption_text()}\t{v.expires_at or 'N/A'}\t{v.title()}")
        if ns.verbose and v.usage_guide and v.usage_guide.steps:
            for i, step in enumerate(v.usage_guide.steps, start=1):
                print(f"\t  {i}. {step}")
    return 0


def _upload(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    picker = LocalFilePicker(ns.paths)
    if ns.camera:
        report = flow.take_photo(picker)
    elif ns.photos:
        report = flow.choose_photos(picker)
    else:
        report = flow.choose_files(picker)
    return _print_report(report)


def _share_url(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    before = {v.id for v in flow.store.vouchers}
    flow.handle_share(_UrlShare(ns.url))
    added = [v for v in flow.store.vouchers if v.id not in before]
    for v in added:
        print(f"{v.id}\t{'valid' if v.is_valid else 'invalid'}\t{v.title()}")
    return 0 if added else 1


def _watch(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    if not flow.sessions.is_authenticated:
        LOG.error("Not logged in. Run `dealsafe login` first.")
        return 1
    source = DropFolderShareSource(ns.watch_dir, poll_interval_sec=ns.poll)
    LOG.info("Starting watch loop; press Ctrl+C to exit")
    source.run(flow.handle_share)
    return 0


def _mark_used(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    return 0 if flow.store.mark_used(ns.voucher_id) else 1


def _delete(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    return 0 if flow.store.delete(ns.voucher_id) else 1


def _delete_account(ns: argparse.Namespace) -> int:
    flow = _build_flow(ns)
    if ns.code:
        flow.auth.confirm_account_deletion(ns.code)
        print("Account deleted")
    else:
        flow.auth.request_account_deletion()
        print("Verification code sent; confirm with `dealsafe delete-account --code XXXXXX`")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="dealsafe",
        description="Upload vouchers to DealSafe for analysis and manage the analysed list.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Request a one-time code by SMS.")
    login.add_argument("--phone", required=True, help="Danish phone number (8 digits, +45 optional)")
    login.set_defaults(handler=_login)

    verify = subparsers.add_parser("verify", help="Verify the one-time code and store the session.")
    verify.add_argument("--phone", required=True)
    verify.add_argument("--code", required=True)
    verify.set_defaults(handler=_verify)

    logout = subparsers.add_parser("logout", help="Forget the stored session.")
    logout.set_defaults(handler=_logout)

    list_cmd = subparsers.add_parser("list", help="List analysed vouchers.")
    list_cmd.add_argument("-v", "--verbose", action="store_true", help="Show redemption steps")
    list_cmd.set_defaults(handler=_list)

    upload = subparsers.add_parser("upload", help="Upload one or more local files as a batch.")
    upload.add_argument("paths", nargs="+")
    kind = upload.add_mutually_exclusive_group()
    kind.add_argument("--camera", action="store_true", help="Treat files as camera captures (always JPEG)")
    kind.add_argument("--photos", action="store_true", help="Treat files as photo-library picks")
    upload.set_defaults(handler=_upload)

    share = subparsers.add_parser("share-url", help="Let the backend download and analyse a URL.")
    share.add_argument("url")
    share.set_defaults(handler=_share_url)

    watch = subparsers.add_parser("watch", help="Upload files dropped into a folder.")
    watch.add_argument("--watch-dir", required=True)
    watch.add_argument("--poll", type=float, default=1.0, help="Polling interval in seconds")
    watch.set_defaults(handler=_watch)

    mark = subparsers.add_parser("mark-used", help="Archive a voucher.")
    mark.add_argument("voucher_id", type=int)
    mark.set_defaults(handler=_mark_used)

    delete = subparsers.add_parser("delete", help="Delete a voucher.")
    delete.add_argument("voucher_id", type=int)
    delete.set_defaults(handler=_delete)

    delete_account = subparsers.add_parser("delete-account", help="Delete your account (two steps).")
    delete_account.add_argument("--code", help="Verification code received by SMS")
    delete_account.set_defaults(handler=_delete_account)

    for sub in (login, verify, logout, list_cmd, upload, share, watch, mark, delete, delete_account):
        _add_common_args(sub)

    args = parser.parse_args(provided)
    log_environment_banner()
    try:
        code = args.handler(args)
    except ValidationFailure as exc:
        LOG.error(f"{exc.title}: {exc.hint}")
        code = 1
    except DealSafeError as exc:
        LOG.error(f"{exc.message}{(' - ' + exc.hint) if exc.hint else ''}")
        code = 1
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
