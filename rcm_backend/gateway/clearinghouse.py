"""Clearinghouse submission gateway.

``ClearinghouseGateway`` is the seam the coordinator submits through.
``HttpClearinghouseClient`` implements it over httpx with a request timeout
and exponential backoff. Transport errors, timeouts, HTTP 429 and 5xx are
retried; 4xx responses and ``rejected`` receipts are definitive and never
retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from ..errors import ExternalSubmissionError
from ..models import Claim

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Clearinghouse acknowledgement for one claim."""

    claim_id: str
    submission_id: str
    status: str
    submitted_at: datetime
    reasons: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status == "accepted"

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "submission_id": self.submission_id,
            "status": self.status,
            "submitted_at": self.submitted_at.isoformat(),
            "reasons": list(self.reasons),
        }


class ClearinghouseGateway(Protocol):
    def submit(self, claim: Claim) -> SubmissionReceipt:
        """Submit a claim.

        Raises:
            ExternalSubmissionError: ``definitive=True`` for payer or format
                rejections, ``definitive=False`` when retries ran out
        """
        ...


class _TransientError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _reasons_from(response: httpx.Response) -> list[str]:
    try:
        body = response.json()
    except ValueError:
        return [response.text[:200]] if response.text else []
    if isinstance(body, dict):
        reasons = body.get("reasons") or body.get("errors") or []
        if isinstance(reasons, str):
            return [reasons]
        return [str(reason) for reason in reasons]
    return []


class HttpClearinghouseClient:
    """Submits claims to ``POST {base_url}/claims``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        api_key: str | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Clearinghouse API base URL
            timeout: Request timeout in seconds
            max_retries: Retry attempts after the first request
            retry_delay: Initial retry delay in seconds, doubled per attempt
            api_key: Sent as ``X-API-Key`` when set
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
            sleep: Delay function used between retries
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep

        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            headers=headers,
            transport=transport,
        )

    def submit(self, claim: Claim) -> SubmissionReceipt:
        response = self._post_with_retry(claim)

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalSubmissionError(
                f"Clearinghouse returned an unreadable receipt for {claim.claim_id}",
                claim.claim_id,
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            raise ExternalSubmissionError(
                f"Clearinghouse receipt for {claim.claim_id} is not an object",
                claim.claim_id,
                status_code=response.status_code,
            )

        status = str(body.get("status", "accepted")).lower()
        reasons = [str(reason) for reason in body.get("reasons") or []]

        if status == "rejected":
            logger.error(f"Clearinghouse rejected claim {claim.claim_id}: {reasons}")
            raise ExternalSubmissionError(
                f"Clearinghouse rejected claim {claim.claim_id}",
                claim.claim_id,
                definitive=True,
                status_code=response.status_code,
                reasons=reasons,
            )

        receipt = SubmissionReceipt(
            claim_id=claim.claim_id,
            submission_id=str(body.get("submission_id") or ""),
            status=status,
            submitted_at=datetime.now(timezone.utc),
            reasons=reasons,
        )
        logger.info(f"Submitted claim {claim.claim_id} as {receipt.submission_id}")
        return receipt

    def _post_with_retry(self, claim: Claim) -> httpx.Response:
        last_error: Exception | None = None
        payload = claim.to_dict()

        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.post("/claims", json=payload)

                if response.status_code == 429:
                    raise _TransientError("Rate limit exceeded", status_code=429)

                # Check for server errors (retry)
                if response.status_code >= 500:
                    raise _TransientError(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )

                # Check for client errors (don't retry)
                if response.status_code >= 400:
                    reasons = _reasons_from(response)
                    logger.error(
                        f"Clearinghouse refused claim {claim.claim_id}: "
                        f"{response.status_code} {reasons}"
                    )
                    raise ExternalSubmissionError(
                        f"Client error: {response.status_code}",
                        claim.claim_id,
                        definitive=True,
                        status_code=response.status_code,
                        reasons=reasons,
                    )

                return response

            except _TransientError as e:
                last_error = e
            except httpx.TransportError as e:
                last_error = e

            # Exponential backoff
            if attempt < self._max_retries:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    f"Submission of {claim.claim_id} failed, retrying in {delay}s: {last_error}"
                )
                self._sleep(delay)

        status_code = getattr(last_error, "status_code", None)
        raise ExternalSubmissionError(
            f"Submission of {claim.claim_id} failed after {self._max_retries + 1} attempts: {last_error}",
            claim.claim_id,
            definitive=False,
            status_code=status_code,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpClearinghouseClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
