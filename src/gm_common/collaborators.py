"""External collaborators: media storage, outbound mail, realtime pub/sub.

Application services depend on the Protocols; default_media_store() and
default_mailer() pick the transport from settings (S3 + SMTP in production,
local disk + log lines for dev and tests). Publishing and mailing happen
after the DB commit, so a provider failure is logged and never rolls back a
money movement.
"""

import asyncio
import json
import logging
import uuid
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Protocol

import aiosmtplib
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import settings
from src.gm_common.errors import UpstreamError
from src.gm_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    async def store(self, filename: str, content: bytes, folder: str) -> str: ...

    async def delete(self, url: str) -> None: ...


class Mailer(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


class Notifier(Protocol):
    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None: ...


def _media_key(filename: str, folder: str) -> str:
    return f"{folder}/{uuid.uuid4().hex}{Path(filename).suffix.lower()}"


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class S3MediaStore:
    """Uploads to an S3 (or S3-compatible) bucket and returns public URLs.

    boto3 is blocking, so every call runs in a worker thread. The client is
    built on first use so importing the app needs no AWS credentials.
    """

    def __init__(
        self,
        bucket: str | None = None,
        public_base_url: str | None = None,
        client: Any = None,
    ) -> None:
        self._bucket = bucket or settings.AWS_STORAGE_BUCKET_NAME
        region = settings.AWS_S3_REGION_NAME
        self._base_url = (
            public_base_url
            or settings.MEDIA_PUBLIC_BASE_URL
            or f"https://{self._bucket}.s3.{region}.amazonaws.com"
        ).rstrip("/")
        self._client = client

    def _s3(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                region_name=settings.AWS_S3_REGION_NAME,
                endpoint_url=settings.AWS_S3_ENDPOINT_URL or None,
                config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        return self._client

    async def store(self, filename: str, content: bytes, folder: str) -> str:
        key = _media_key(filename, folder)
        content_type = _content_type(filename)
        try:
            await asyncio.to_thread(
                self._s3().put_object,
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamError("media", str(exc)) from exc
        logger.info("Stored s3://%s/%s (%d bytes)", self._bucket, key, len(content))
        return f"{self._base_url}/{key}"

    async def delete(self, url: str) -> None:
        prefix = f"{self._base_url}/"
        if not url.startswith(prefix):
            logger.warning("Refusing to delete foreign media url %s", url)
            return
        key = url[len(prefix):]
        try:
            await asyncio.to_thread(self._s3().delete_object, Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamError("media", str(exc)) from exc
        logger.info("Deleted s3://%s/%s", self._bucket, key)


def _content_type(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    return {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
    }.get(suffix, "application/octet-stream")


class LocalMediaStore:
    """Dev/test store: writes under MEDIA_ROOT, serves from MEDIA_BASE_URL."""

    def __init__(self, root: str | None = None, base_url: str | None = None) -> None:
        self._root = Path(root or settings.MEDIA_ROOT)
        self._base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    async def store(self, filename: str, content: bytes, folder: str) -> str:
        key = _media_key(filename, folder)
        target = self._root / key
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, content)
        except OSError as exc:
            raise UpstreamError("media", str(exc)) from exc
        return f"{self._base_url}/{key}"

    async def delete(self, url: str) -> None:
        prefix = f"{self._base_url}/"
        if not url.startswith(prefix):
            logger.warning("Refusing to delete foreign media url %s", url)
            return
        target = self._root / url[len(prefix):]
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as exc:
            raise UpstreamError("media", str(exc)) from exc


def default_media_store() -> MediaStore:
    if settings.MEDIA_BACKEND == "s3":
        return S3MediaStore()
    return LocalMediaStore()


# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


class SmtpMailer:
    """Plain-text mail over SMTP (STARTTLS when SMTP_USE_TLS)."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        sender: str | None = None,
    ) -> None:
        self._host = host or settings.SMTP_HOST
        self._port = port or settings.SMTP_PORT
        self._sender = sender or settings.MAIL_FROM

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._host,
                port=self._port,
                username=settings.SMTP_USERNAME or None,
                password=settings.SMTP_PASSWORD or None,
                start_tls=settings.SMTP_USE_TLS,
                timeout=settings.SMTP_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise UpstreamError("mail", str(exc)) from exc
        logger.info("Mail sent to=%s subject=%r", to, subject)


class LoggingMailer:
    """Dev/test transport: logs the message instead of sending it."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("MAIL to=%s subject=%r (%d chars)", to, subject, len(body))


def default_mailer() -> Mailer:
    if settings.MAIL_BACKEND == "smtp":
        return SmtpMailer()
    return LoggingMailer()


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


class RedisNotifier:
    """Publishes JSON events on channel ``room:<room>``."""

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"event": event, "payload": payload}, default=str)
        try:
            redis = await get_redis()
            await redis.publish(f"room:{room}", message)
        except Exception as exc:
            raise UpstreamError("pubsub", str(exc)) from exc


async def publish_quietly(
    notifier: Notifier, room: str, event: str, payload: dict[str, Any]
) -> None:
    """Fire-and-log publish for post-commit notifications."""
    try:
        await notifier.publish(room, event, payload)
    except UpstreamError as exc:
        logger.warning("Notification %s to %s dropped: %s", event, room, exc.message)


async def send_quietly(mailer: Mailer, to: str, subject: str, body: str) -> None:
    try:
        await mailer.send(to, subject, body)
    except UpstreamError as exc:
        logger.warning("Mail to %s dropped: %s", to, exc.message)
