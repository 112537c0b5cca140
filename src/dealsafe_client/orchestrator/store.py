"""Process-wide voucher list reconciled against the backend."""

from __future__ import annotations

from typing import List, Optional

from ..api.client import VoucherApiClient
from ..auth.session import SessionGuard
from ..domain.models import Voucher
from ..errors import DealSafeError, SessionExpired
from ..logging import get_logger
from ..notify import Notifier

LOG = get_logger("orchestrator-store")

LIST_LIMIT = 100


class VoucherStore:
    """Holds the last authoritative voucher list.

    ``refresh`` always replaces the whole list; local edits are limited to
    the optimistic removal after a successful delete.
    """

    def __init__(self, api: VoucherApiClient, guard: SessionGuard, notifier: Notifier) -> None:
        self.api = api
        self.guard = guard
        self.notifier = notifier
        self._vouchers: List[Voucher] = []
        self.is_loading = False

    @property
    def vouchers(self) -> List[Voucher]:
        return list(self._vouchers)

    def get(self, voucher_id: int) -> Optional[Voucher]:
        for v in self._vouchers:
            if v.id == voucher_id:
                return v
        return None

    def clear(self) -> None:
        self._vouchers = []

    def refresh(self) -> bool:
        """Re-fetch the full list; returns True when the list was replaced."""
        if not self.guard.sessions.is_authenticated:
            LOG.debug("Skipping voucher refresh; not authenticated")
            return False
        self.is_loading = True
        try:
            vouchers = self.guard.call(self.api.list_vouchers, LIST_LIMIT)
        except SessionExpired:
            return False
        except DealSafeError as exc:
            LOG.error(f"Error fetching vouchers: {exc}")
            return False
        finally:
            self.is_loading = False
        if vouchers is None:
            return False
        self._vouchers = vouchers
        LOG.info(f"Voucher list refreshed: {len(vouchers)} voucher(s)")
        return True

    def mark_used(self, voucher_id: int) -> bool:
        if not self.guard.sessions.is_authenticated:
            return False
        try:
            self.guard.call(self.api.mark_used, voucher_id)
        except SessionExpired:
            return False
        except DealSafeError as exc:
            LOG.error(f"Error marking voucher {voucher_id} as used: {exc}")
            self.notifier.show_error("Error", "Failed to mark voucher as used")
            return False
        LOG.info(f"Voucher {voucher_id} marked as used")
        self.refresh()
        return True

    def delete(self, voucher_id: int) -> bool:
        if not self.guard.sessions.is_authenticated:
            return False
        try:
            self.guard.call(self.api.delete_voucher, voucher_id)
        except SessionExpired:
            return False
        except DealSafeError as exc:
            LOG.error(f"Error deleting voucher {voucher_id}: {exc}")
            self.notifier.show_error("Error", "Failed to delete voucher")
            self.refresh()
            return False
        self._vouchers = [v for v in self._vouchers if v.id != voucher_id]
        LOG.info(f"Voucher {voucher_id} deleted")
        return True
