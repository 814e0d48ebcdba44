"""Classify and persist artifacts captured for test attempts."""

import asyncio
import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

from bug0.studio_reporter.models.events import AttachmentReport
from bug0.studio_reporter.models.records import AttachmentRecord, AttachmentType
from bug0.studio_reporter.store.base import ATTACHMENTS, DocumentStore

logger = logging.getLogger(__name__)


def classify_attachment(name: str, content_type: str) -> AttachmentType:
    """Map an attachment to its kind, checked in fixed precedence.

    Args:
        name: Declared attachment name
        content_type: Declared MIME type

    Returns:
        One of screenshot, video, trace, diff, log or other

    """
    name_lower = name.lower()
    if "screenshot" in name_lower or content_type.startswith("image/"):
        return "screenshot"
    if "video" in name_lower or content_type.startswith("video/"):
        return "video"
    if "trace" in name_lower or "zip" in content_type:
        return "trace"
    if "diff" in name_lower:
        return "diff"
    if content_type.startswith("text/"):
        return "log"
    return "other"


def retry_video_name(file_name: str, test_id: str, retry: int) -> str:
    """Return the name a retry video is preserved under.

    Example:
        >>> retry_video_name("video.webm", "abcdef1234567890", 2)
        'video-abcdef12-retry-2.webm'

    """
    path = Path(file_name)
    return f"{path.stem}-{test_id[:8]}-retry-{retry}{path.suffix}"


class AttachmentVault:
    """Persists attachment records for the attempts of a run.

    The executor reuses the video file name across retries and deletes the
    previous file when a retry starts, so videos of retries are copied to a
    per-attempt name before being referenced.
    """

    def __init__(self, store: DocumentStore, run_id: str) -> None:
        """Initialize vault for a run."""
        self.store = store
        self.run_id = run_id

    async def capture(
        self,
        attachment: AttachmentReport,
        result_id: str,
        spec_id: str,
        retry: int,
        test_id: str,
    ) -> str:
        """Store one attachment of an attempt and return its identifier."""
        attachment_type = classify_attachment(attachment.name, attachment.content_type)

        body: str | None = None
        file_name = ""
        if attachment_type == "log" and attachment.body:
            body = attachment.body.decode("utf-8", errors="replace")
        elif attachment.path:
            file_name = Path(attachment.path).name
            if attachment_type == "video" and retry > 0:
                file_name = await self._preserve_retry_video(
                    Path(attachment.path), test_id, retry
                )

        now = datetime.now(UTC)
        record = AttachmentRecord(
            result_id=result_id,
            spec_id=spec_id,
            run_id=self.run_id,
            name=attachment.name,
            content_type=attachment.content_type,
            path=file_name,
            body=body,
            attachment_type=attachment_type,
            captured_at=now,
            created_at=now,
            updated_at=now,
        )
        return await self.store.insert_one(ATTACHMENTS, record.to_document())

    async def _preserve_retry_video(
        self, source: Path, test_id: str, retry: int
    ) -> str:
        """Copy a retry video next to the original and return the copy's name.

        Falls back to the original name, which a later retry may overwrite,
        when the copy fails.
        """
        new_name = retry_video_name(source.name, test_id, retry)
        try:
            await asyncio.to_thread(
                shutil.copyfile, source, source.with_name(new_name)
            )
        except OSError as e:
            logger.error(f"Failed to copy video for retry {retry} of {source}: {e}")
            return source.name

        logger.info(f"Copied video for retry {retry}: {new_name}")
        return new_name
