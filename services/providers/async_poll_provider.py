# services/providers/async_poll_provider.py
"""
Create-then-poll face match.

The submit call returns a task id; the status endpoint is then polled once per
interval until the task completes, fails, or the attempt budget runs out.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from config import ProviderConfig
from models.schemas import CompressedImage, ProviderTask, TaskStatus
from services.providers.base import ProviderHTTPClient, ProviderRawResult, to_base64, truncate
from services.result_normalizer import DEFAULT_FIELD_MAP, FieldMap
from utils.exceptions import (
    ParseError,
    ProviderHTTPError,
    ProviderTaskFailedError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

TASK_ID_FIELDS = ("request_id", "requestId", "task_id", "id")
GROUP_ID_FIELDS = ("group_id", "groupId")

# Vendor status vocabulary -> task state
STATUS_MAP = {
    "pending": TaskStatus.PENDING,
    "queued": TaskStatus.PENDING,
    "in_progress": TaskStatus.IN_PROGRESS,
    "processing": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "success": TaskStatus.COMPLETED,
    "failed": TaskStatus.FAILED,
    "failure": TaskStatus.FAILED,
    "error": TaskStatus.FAILED,
}


def _first(data: Dict[str, Any], names) -> Optional[str]:
    for name in names:
        value = data.get(name)
        if value not in (None, ""):
            return str(value)
    return None


class AsyncPollProvider:
    mode_tag = "async-poll-facematch"
    requires_doc_type = False

    def __init__(
        self,
        config: ProviderConfig,
        session: Optional[requests.Session] = None,
        field_map: FieldMap = DEFAULT_FIELD_MAP,
        sleep=asyncio.sleep,
    ):
        self.config = config
        self.http = ProviderHTTPClient(config, session)
        self.field_map = field_map
        self._sleep = sleep

    async def submit(self, id_image: CompressedImage, selfie_image: CompressedImage) -> ProviderTask:
        response = await self.http.request(
            'POST',
            self.config.submit_url,
            step="submit",
            json={
                "image1": to_base64(id_image),
                "image2": to_base64(selfie_image),
            },
            timeout=self.config.upload_timeout,
        )
        self.http.raise_for_status(response, "submit")
        data = self.http.json_object(response, "submit")

        task_id = _first(data, TASK_ID_FIELDS)
        if not task_id:
            raise ParseError("Provider did not return a request_id", body=data, step="submit")

        task = ProviderTask(task_id=task_id, group_id=_first(data, GROUP_ID_FIELDS))
        logger.info(f"Task created: {task.task_id}")
        return task

    async def poll(self, task: ProviderTask) -> Dict[str, Any]:
        """Poll until the task is terminal. Returns the completed payload."""
        max_attempts = self.config.poll_max_attempts

        for attempt in range(1, max_attempts + 1):
            await self._sleep(self.config.poll_interval)
            task.attempts = attempt

            response = await self.http.request(
                'GET',
                self.config.status_url,
                step="poll",
                params={"request_id": task.task_id},
            )

            if response.status_code == 404:
                if attempt == 1:
                    # Wrong polling endpoint, not a task that is still warming up
                    logger.error(f"Polling endpoint returned 404 on first attempt: {self.config.status_url}")
                    raise ProviderHTTPError(
                        404,
                        body=self.http.error_body(response),
                        step="poll",
                        detail="Polling endpoint not found (check ASYNC_STATUS_URL)",
                    )
                logger.info(f"Task {task.task_id} not visible yet (attempt {attempt}/{max_attempts})")
                continue

            self.http.raise_for_status(response, "poll")
            data = self.http.json_object(response, "poll")

            raw_status = data.get("status")
            if raw_status is None:
                raise ParseError("Poll response has no status field", body=data, step="poll")

            new_status = STATUS_MAP.get(str(raw_status).strip().lower())
            if new_status is None:
                logger.warning(f"Unknown task status '{raw_status}', continuing to poll")
                continue

            if not task.can_advance(new_status):
                logger.warning(
                    f"Task {task.task_id} reported {new_status.value} after {task.status.value}, ignoring stale status"
                )
                continue

            task.advance(new_status)
            logger.info(f"Task {task.task_id}: {new_status.value} (attempt {attempt}/{max_attempts})")

            if new_status == TaskStatus.COMPLETED:
                return data
            if new_status == TaskStatus.FAILED:
                logger.error(f"Task {task.task_id} failed: {truncate(data)}")
                raise ProviderTaskFailedError(body=data, task_id=task.task_id)

        raise ProviderTimeoutError(
            f"Task {task.task_id} did not finish after {max_attempts} polls",
            step="poll",
        )

    async def execute(
        self,
        id_image: CompressedImage,
        selfie_image: CompressedImage,
        doc_type: Optional[str],
    ) -> ProviderRawResult:
        self.http.check_credentials()
        task = await self.submit(id_image, selfie_image)
        payload = await self.poll(task)
        return ProviderRawResult(payload=payload, task=task, steps=["submit", "poll"])
