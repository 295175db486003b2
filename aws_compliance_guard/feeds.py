"""Inbound event feeds delivering compliance events to a handler."""
from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Mapping, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import EventParseError
from .events import parse_config_event
from .models import ComplianceEvent
from .utils import describe_exception

logger = logging.getLogger(__name__)

EventHandler = Callable[[ComplianceEvent], Any]


class SqsEventFeed:
    """Long-poll an SQS queue fed by the EventBridge compliance rule.

    Events of one received batch are handled concurrently. A message is deleted
    only after its handler returns, so a crash or a handler error leaves it for
    redelivery. Unparsable messages are also left on the queue for its redrive
    policy to move to a dead-letter queue.
    """

    def __init__(
        self,
        session: boto3.session.Session,
        queue_url: str,
        *,
        wait_time: int = 20,
        max_messages: int = 10,
        max_workers: int = 10,
    ) -> None:
        self.queue_url = queue_url
        self.wait_time = wait_time
        self.max_messages = max_messages
        self.max_workers = max_workers
        self._sqs = session.client("sqs")

    def _parse(self, message: Mapping[str, Any]) -> Optional[ComplianceEvent]:
        try:
            return parse_config_event(json.loads(message.get("Body", "")))
        except (ValueError, EventParseError) as exc:
            logger.error(
                "Leaving unparsable SQS message %s on the queue: %s",
                message.get("MessageId", "?"),
                exc,
            )
            return None

    @staticmethod
    def _dispatch(handler: EventHandler, message_id: str, event: ComplianceEvent) -> bool:
        try:
            handler(event)
        except Exception:  # message stays on the queue for redelivery
            logger.exception("Handler failed for SQS message %s", message_id)
            return False
        return True

    def poll_once(self, handler: EventHandler) -> int:
        """Receive one batch and dispatch it; returns the number of handled messages."""

        response = self._sqs.receive_message(
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=self.max_messages,
            WaitTimeSeconds=self.wait_time,
        )
        batch: List[Tuple[Mapping[str, Any], ComplianceEvent]] = []
        for message in response.get("Messages", []):
            event = self._parse(message)
            if event is not None:
                batch.append((message, event))
        if not batch:
            return 0

        workers = max(1, min(self.max_workers, len(batch)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sqs-feed") as pool:
            results = list(
                pool.map(
                    lambda item: self._dispatch(handler, item[0].get("MessageId", "?"), item[1]),
                    batch,
                )
            )

        handled = 0
        for (message, _), ok in zip(batch, results):
            if not ok:
                continue
            handled += 1
            try:
                self._sqs.delete_message(
                    QueueUrl=self.queue_url, ReceiptHandle=message["ReceiptHandle"]
                )
            except (ClientError, BotoCoreError) as exc:
                logger.error(
                    "Failed to delete SQS message %s: %s",
                    message.get("MessageId", "?"),
                    describe_exception(exc),
                )
        return handled

    def subscribe(self, handler: EventHandler, max_batches: Optional[int] = None) -> int:
        """Feed every received event to *handler* until *max_batches* polls complete."""

        batches = 0
        total = 0
        while max_batches is None or batches < max_batches:
            batches += 1
            try:
                total += self.poll_once(handler)
            except (ClientError, BotoCoreError) as exc:
                logger.error("Failed to receive from %s: %s", self.queue_url, describe_exception(exc))
        return total


__all__ = ["EventHandler", "SqsEventFeed"]
