"""Ingestion and upload orchestration for the DealSafe client."""

from .normalize import AttachmentNormalizer, resolve_mime_type
from .progress import ProgressSimulator
from .upload import UploadPipeline
from .store import VoucherStore
from .reminder import NotificationReminder
from .batch import BatchReport, BatchUploadCoordinator, format_failures
from .share import ShareEventDeduplicator, ShareIntentHandler
from .watch import DropFolderShareSource
from .sources import LocalFilePicker
from .flow import FlowConfig, IngestFlow, build_flow_config, log_environment_banner

__all__ = [
    "AttachmentNormalizer",
    "resolve_mime_type",
    "ProgressSimulator",
    "UploadPipeline",
    "VoucherStore",
    "NotificationReminder",
    "BatchReport",
    "BatchUploadCoordinator",
    "format_failures",
    "ShareEventDeduplicator",
    "ShareIntentHandler",
    "DropFolderShareSource",
    "LocalFilePicker",
    "FlowConfig",
    "IngestFlow",
    "build_flow_config",
    "log_environment_banner",
]
