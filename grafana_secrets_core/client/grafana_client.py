"""
Minimal Grafana Cloud API client built on requests.

Only the verbs the engine needs are implemented: create/delete
organisation (Cloud) keys, and create/delete keys inside a stack through
a temporary stack-scoped admin key.
"""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Tuple, Type
from urllib.parse import quote

import requests
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..constants import SCOPED_KEY_ROLE
from ..context.request_context import RequestContext
from ..exceptions import GrafanaClientError, RequestCancelledError
from ..utils.logger import get_logger
from .models import CloudAPIKey, Stack, StackAPIKey, TemporaryStackKey

StackCleanup = Callable[[RequestContext], None]


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class _BaseClient:
    """Shared request plumbing: auth header, timeouts, error mapping."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30,
        verify_ssl: bool = True,
        user_agent: str = "grafana-secrets-core",
        session: Optional[requests.Session] = None,
        max_workers: int = 8,
    ):
        self.base_url = base_url or ""
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self._api_key = api_key or ""
        self.session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="grafana-http")
        self.logger = get_logger()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url='{self.base_url}')"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        stage: str,
        body: Optional[Dict[str, Any]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Any:
        """
        Perform one API round-trip.

        Args:
            ctx: Request context bounding the call
            method: HTTP method
            path: Path relative to the base URL
            stage: Short name of the step, used in errors and logs
            body: Optional JSON body
            response_model: Model the reply must validate against

        Returns:
            The validated model, or the decoded JSON payload (None when
            empty) without a response model

        Raises:
            RequestCancelledError: If the context is cancelled or out of time
            GrafanaClientError: On transport failures, non-2xx responses and
                replies that do not match ``response_model``
        """
        if not self.base_url:
            raise GrafanaClientError(
                f"cannot {stage}: client has no base URL configured", stage=stage
            )

        ctx.raise_if_cancelled(stage)
        timeout = ctx.bounded_timeout(self.timeout)
        if timeout <= 0:
            raise RequestCancelledError(
                f"request deadline exceeded before {stage}",
                correlation_id=ctx.correlation_id,
                stage=stage,
            )

        url = self._url(path)
        self.logger.debug(
            "Grafana Cloud API call", extra={"method": method, "path": path, "stage": stage}
        )

        try:
            response = self._send(ctx, stage, method, url, body, timeout)
        except requests.Timeout as e:
            if ctx.cancelled:
                raise RequestCancelledError(
                    f"request deadline exceeded during {stage}",
                    correlation_id=ctx.correlation_id,
                    stage=stage,
                    cause=e,
                ) from e
            raise GrafanaClientError(f"timeout during {stage}", stage=stage, cause=e) from e
        except requests.RequestException as e:
            raise GrafanaClientError(
                f"error calling Grafana Cloud during {stage}: {e}", stage=stage, cause=e
            ) from e

        if response.status_code >= 400:
            raise GrafanaClientError(
                f"{stage} failed, status: {response.status_code}, body: {response.text}",
                http_status=response.status_code,
                response_body=response.text,
                stage=stage,
            )

        payload = None
        if response.content:
            try:
                payload = response.json()
            except ValueError as e:
                raise GrafanaClientError(
                    f"{stage} returned a non-JSON body",
                    http_status=response.status_code,
                    response_body=response.text,
                    stage=stage,
                    cause=e,
                ) from e

        if response_model is None:
            return payload
        try:
            return response_model.model_validate(payload)
        except PydanticValidationError as e:
            raise GrafanaClientError(
                f"{stage} returned an unexpected body",
                http_status=response.status_code,
                response_body=response.text,
                stage=stage,
                cause=e,
            ) from e

    def _send(
        self,
        ctx: RequestContext,
        stage: str,
        method: str,
        url: str,
        body: Optional[Dict[str, Any]],
        timeout: float,
    ) -> requests.Response:
        """
        Run the round-trip on a worker and wait for it, the deadline or a cancel.

        A call abandoned on cancellation finishes on the worker and its
        result is discarded.
        """
        future = self._executor.submit(
            self.session.request,
            method,
            url,
            json=body,
            headers=self._get_headers(),
            timeout=timeout,
            verify=self.verify_ssl,
        )
        wake = threading.Event()
        future.add_done_callback(lambda _: wake.set())
        unregister = ctx.on_cancel(wake.set)
        try:
            wake.wait(ctx.remaining_seconds())
        finally:
            unregister()

        if not future.done():
            future.cancel()
            raise RequestCancelledError(
                f"request cancelled during {stage}",
                correlation_id=ctx.correlation_id,
                stage=stage,
            )
        return future.result()

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self.session.close()


class StackScopedClient(_BaseClient):
    """Client bound to one stack's Grafana API with a temporary admin key."""

    def __init__(self, stack_slug: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stack_slug = stack_slug

    def create_api_key(
        self, ctx: RequestContext, name: str, role: str, seconds_to_live: int
    ) -> StackAPIKey:
        return self._request(
            ctx,
            "POST",
            "api/auth/keys",
            stage="create stack API key",
            body={"name": name, "role": role, "secondsToLive": seconds_to_live},
            response_model=StackAPIKey,
        )

    def delete_api_key(self, ctx: RequestContext, key_id: int) -> None:
        self._request(ctx, "DELETE", f"api/auth/keys/{_segment(key_id)}", stage="delete stack API key")


class GrafanaCloudClient(_BaseClient):
    """Client for the Grafana Cloud API authenticated with the admin key."""

    def create_cloud_api_key(
        self, ctx: RequestContext, organisation: str, name: str, role: str
    ) -> CloudAPIKey:
        return self._request(
            ctx,
            "POST",
            f"api/orgs/{_segment(organisation)}/api-keys",
            stage="create Cloud API key",
            body={"name": name, "role": role},
            response_model=CloudAPIKey,
        )

    def delete_cloud_api_key(self, ctx: RequestContext, organisation: str, name: str) -> None:
        self._request(
            ctx,
            "DELETE",
            f"api/orgs/{_segment(organisation)}/api-keys/{_segment(name)}",
            stage="delete Cloud API key",
        )

    def get_stack(self, ctx: RequestContext, stack_slug: str) -> Stack:
        return self._request(
            ctx,
            "GET",
            f"api/instances/{_segment(stack_slug)}",
            stage="read stack",
            response_model=Stack,
        )

    def create_stack_admin_key(
        self, ctx: RequestContext, stack_slug: str, name: str, role: str, seconds_to_live: int
    ) -> StackAPIKey:
        return self._request(
            ctx,
            "POST",
            f"api/instances/{_segment(stack_slug)}/api/auth/keys",
            stage="create stack admin key",
            body={"name": name, "role": role, "secondsToLive": seconds_to_live},
            response_model=StackAPIKey,
        )

    def delete_stack_admin_key(self, ctx: RequestContext, stack_slug: str, key_id: int) -> None:
        self._request(
            ctx,
            "DELETE",
            f"api/instances/{_segment(stack_slug)}/api/auth/keys/{_segment(key_id)}",
            stage="delete stack admin key",
        )

    def create_stack_scoped_client(
        self,
        ctx: RequestContext,
        stack_slug: str,
        name_prefix: str,
        ttl_seconds: int,
        role: str = SCOPED_KEY_ROLE,
    ) -> Tuple[StackScopedClient, TemporaryStackKey, StackCleanup]:
        """
        Mint a temporary admin key on a stack and return a client using it.

        Args:
            ctx: Request context bounding the calls
            stack_slug: Stack to act on
            name_prefix: Prefix marking the key as a temporary helper
            ttl_seconds: Lifetime of the temporary key
            role: Role of the temporary key

        Returns:
            The scoped client, the temporary key's identifiers, and a cleanup
            callable deleting the temporary key
        """
        stack = self.get_stack(ctx, stack_slug)
        name = f"{name_prefix}{uuid.uuid4()}"
        admin_key = self.create_stack_admin_key(ctx, stack_slug, name, role, ttl_seconds)

        temporary_key = TemporaryStackKey(id=admin_key.id, name=admin_key.name, stack_slug=stack_slug)
        scoped_client = StackScopedClient(
            stack_slug,
            stack.url,
            admin_key.key.get_secret_value(),
            timeout=self.timeout,
            verify_ssl=self.verify_ssl,
            user_agent=self.user_agent,
        )

        def cleanup(cleanup_ctx: RequestContext) -> None:
            try:
                self.delete_stack_admin_key(cleanup_ctx, stack_slug, temporary_key.id)
            finally:
                scoped_client.close()

        return scoped_client, temporary_key, cleanup
