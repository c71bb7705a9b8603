"""
SigNoz API HTTP client

Thin async wrapper around the SigNoz HTTP API: builder queries through
``/api/v4/query_range``, metric discovery and metadata, and a connectivity
probe against ``/api/v1/rules``. Non-2xx responses, transport failures and
timeouts are raised as ``SignozAPIError``.
"""

import json
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.logging import get_logger
from src.telemetry.decorators import trace_signoz_api_call
from src.telemetry.metrics import record_api_request
from src.telemetry.utils import add_signoz_context, add_span_attributes, get_current_span

from .config import SignozConfig, get_signoz_headers
from .schemas import (
    ConnectionResult,
    MetricMetadataResponse,
    MetricsDiscoveryResponse,
    describe_validation_error,
)
from .time_utils import current_time_ms, parse_duration_seconds

logger = get_logger('HTTP')

QUERY_RANGE_ENDPOINT = "/api/v4/query_range"
METRICS_ENDPOINT = "/api/v1/metrics"
RULES_ENDPOINT = "/api/v1/rules"


class SignozAPIError(Exception):
    """SigNoz request failed (HTTP status, transport error or timeout)."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_text = response_text


class SignozResponseError(SignozAPIError):
    """SigNoz answered, but not with the expected envelope."""
    pass


class SignozClient:
    """
    Async client for one SigNoz instance.

    A fresh ``httpx.AsyncClient`` is opened per request; nothing is pooled
    across tool calls.
    """

    def __init__(self, config: SignozConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    @trace_signoz_api_call(operation="http_request")
    async def _request(self, *, method: str, endpoint: str, json_data: Optional[Dict[str, Any]] = None,
                       error_prefix: str = "Signoz API error") -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            SignozAPIError: On non-2xx status, transport failure or timeout
            SignozResponseError: If a 2xx body is not JSON
        """
        headers = get_signoz_headers(self.config)
        if json_data is not None:
            headers["Content-Type"] = "application/json"

        logger.debug(
            f"{method} {self.config.base_url}{endpoint} | "
            f"data_size:{len(json.dumps(json_data)) if json_data is not None else 0}"
        )

        span = get_current_span()
        add_span_attributes(span, {
            "http.method": method,
            "http.url": f"{self.config.base_url}{endpoint}",
            "signoz.endpoint": endpoint,
        })

        start_time = time.monotonic()
        status_code = 0
        try:
            async with self._http_client() as client:
                response = await client.request(method, endpoint, json=json_data, headers=headers)
            status_code = response.status_code
        except httpx.TimeoutException as e:
            logger.error(f"request timeout | endpoint:{endpoint} | timeout:{self.config.timeout}s")
            raise SignozAPIError(
                f"Request timeout after {self.config.timeout}s calling {endpoint}: {e}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"transport error | endpoint:{endpoint} | error:{e}")
            raise SignozAPIError(f"Request to {endpoint} failed: {e}") from e
        finally:
            record_api_request(endpoint, method, status_code, time.monotonic() - start_time)

        response_text = response.text
        add_span_attributes(span, {
            "http.status_code": status_code,
            "signoz.response.size": len(response_text),
        })

        if status_code >= 400:
            logger.warning(f"response {status_code} | endpoint:{endpoint} | size:{len(response_text)}")
            raise SignozAPIError(
                f"{error_prefix}: {status_code} - {response_text}",
                status_code=status_code,
                response_text=response_text,
            )

        logger.debug(f"response {status_code} | size:{len(response_text)}")

        try:
            return response.json()
        except ValueError as e:
            raise SignozResponseError(
                f"{error_prefix}: response is not valid JSON ({response_text[:200]})",
                status_code=status_code,
                response_text=response_text,
            ) from e

    async def query_range(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a builder query.

        The body is returned as decoded; shape problems are reported by the
        formatter rather than raised here.
        """
        span = get_current_span()
        builder_queries = request.get("compositeQuery", {}).get("builderQueries", {})
        filter_count = sum(
            len((q.get("filters") or {}).get("items", [])) for q in builder_queries.values()
        ) if builder_queries else 0
        add_signoz_context(span,
                           data_source=request.get("dataSource"),
                           start_ms=request.get("start"),
                           end_ms=request.get("end"),
                           filter_count=filter_count)

        data = await self._request(method="POST", endpoint=QUERY_RANGE_ENDPOINT, json_data=request)
        if not isinstance(data, dict):
            raise SignozResponseError(f"Signoz API error: unexpected response type {type(data).__name__}")
        return data

    async def discover_metrics(self, time_range: str = "1h", limit: int = 50, offset: int = 0,
                               now_ms: Optional[int] = None) -> MetricsDiscoveryResponse:
        """
        List metrics active in the window, ordered by sample count.

        Raises:
            ValueError: If time_range is not like '1h', '30m', '2d'
            SignozAPIError: If the request fails
            SignozResponseError: If the envelope does not validate
        """
        window_seconds = parse_duration_seconds(time_range)
        end_ms = now_ms if now_ms is not None else current_time_ms()
        start_ms = end_ms - window_seconds * 1000

        body = {
            "filters": {"items": [], "op": "AND"},
            "orderBy": {"columnName": "samples", "order": "desc"},
            "limit": limit,
            "offset": offset,
            "start": start_ms,
            "end": end_ms,
        }

        logger.info(f"discovering metrics | window:{time_range} | limit:{limit} | offset:{offset}")
        data = await self._request(method="POST", endpoint=METRICS_ENDPOINT, json_data=body,
                                   error_prefix="Metrics discovery failed")

        try:
            return MetricsDiscoveryResponse.model_validate(data)
        except ValidationError as e:
            raise SignozResponseError(
                f"Metrics discovery failed: unexpected response structure ({describe_validation_error(e)})"
            ) from e

    async def get_metric_metadata(self, metric_name: str) -> MetricMetadataResponse:
        """
        Fetch type, unit and label cardinality for one metric.

        Raises:
            SignozAPIError: If the request fails
            SignozResponseError: If the envelope does not validate
        """
        endpoint = f"{METRICS_ENDPOINT}/{quote(metric_name, safe='')}/metadata"

        logger.info(f"fetching metric metadata | metric:{metric_name}")
        data = await self._request(method="GET", endpoint=endpoint,
                                   error_prefix="Metric metadata request failed")

        try:
            return MetricMetadataResponse.model_validate(data)
        except ValidationError as e:
            raise SignozResponseError(
                f"Metric metadata request failed: unexpected response structure ({describe_validation_error(e)})"
            ) from e

    async def test_connection(self) -> ConnectionResult:
        """Probe the rules endpoint and report timing. Never raises."""
        start_time = time.monotonic()
        try:
            async with self._http_client() as client:
                response = await client.get(RULES_ENDPOINT, headers=get_signoz_headers(self.config))
        except httpx.HTTPError as e:
            logger.warning(f"connection test failed | error:{e}")
            return ConnectionResult(success=False, response_time_ms=0, error=str(e) or type(e).__name__)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        status = f"{response.status_code} {response.reason_phrase}".strip()

        if response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            data = payload.get("data") if isinstance(payload, dict) else None
            rules = data.get("rules") if isinstance(data, dict) else None
            rule_count = len(rules) if isinstance(rules, list) else 0

            logger.info(f"connection test ok | status:{status} | time:{elapsed_ms}ms | rules:{rule_count}")
            return ConnectionResult(success=True, response_time_ms=elapsed_ms, status=status, rule_count=rule_count)

        logger.warning(f"connection test rejected | status:{status}")
        return ConnectionResult(
            success=False,
            response_time_ms=elapsed_ms,
            status=status,
            error=f"{status}: {response.text}",
        )

    async def check_connectivity(self) -> bool:
        """True when the rules endpoint answers with a 2xx."""
        try:
            async with self._http_client() as client:
                response = await client.get(RULES_ENDPOINT, headers=get_signoz_headers(self.config))
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"connectivity check failed | error:{e}")
            return False

    def get_config(self) -> SignozConfig:
        """Current connection settings (immutable)."""
        return self.config
