# netflow/clients/rpc.py

import time
from typing import Any, Callable, List, Optional, Sequence

import msgspec
import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)
from web3 import Web3

from ..core.errors import FatalRpcError, RpcRetriesExhausted, TransientRpcError
from ..core.logging import LoggingMixin
from ..types import RawLog, RpcConfig, TRANSFER_TOPIC
from .rate_limiter import RateLimiter


# JSON-RPC error codes worth another attempt: limit exceeded, internal
# error, generic server error (header not found, node syncing).
TRANSIENT_RPC_CODES = frozenset({-32005, -32603, -32000, 429})
TRANSIENT_HTTP_STATUS = frozenset({408, 425, 429})


class RpcClient(LoggingMixin):
    """
    JSON-RPC client for the chain node.

    Every call passes the shared rate gate first, then runs under a tenacity
    retry policy that only retries ``TransientRpcError``.
    """

    def __init__(self,
                 config: RpcConfig,
                 rate_limiter: RateLimiter,
                 w3: Optional[Web3] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.rate_limiter = rate_limiter
        self._sleep = sleep
        self.malformed_logs = 0
        self.w3 = w3 or Web3(Web3.HTTPProvider(
            config.endpoint_url,
            request_kwargs={"timeout": config.timeout},
            exception_retry_configuration=None,
        ))

    # === Public operations ===

    def get_latest_block_number(self) -> int:
        result = self.call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise FatalRpcError(f"Unparsable block number: {result!r}",
                                method="eth_blockNumber") from e

    def get_logs(self, from_block: int, to_block: int,
                 token_addresses: Sequence[str]) -> List[RawLog]:
        if from_block > to_block:
            raise ValueError(f"Invalid block range {from_block}-{to_block}")

        params = [{
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "address": list(token_addresses),
            "topics": [TRANSFER_TOPIC],
        }]
        result = self.call("eth_getLogs", params)

        if not isinstance(result, list):
            raise FatalRpcError(f"Unparsable eth_getLogs result: {result!r}",
                                method="eth_getLogs")

        logs: List[RawLog] = []
        malformed = 0
        for entry in result:
            try:
                logs.append(msgspec.convert(entry, type=RawLog))
            except msgspec.ValidationError as e:
                malformed += 1
                self.log_warning("Skipping malformed log entry",
                                 from_block=from_block, to_block=to_block, error=str(e))
        self.malformed_logs += malformed

        self.log_debug("Fetched logs",
                       from_block=from_block, to_block=to_block,
                       log_count=len(logs), malformed=malformed)
        return logs

    # === Request plumbing ===

    def call(self, method: str, params: List[Any]) -> Any:
        retrying = Retrying(
            retry=retry_if_exception_type(TransientRpcError),
            wait=wait_exponential(multiplier=self.config.base_delay, max=self.config.max_delay),
            stop=(stop_after_attempt(self.config.max_retries)
                  | stop_after_delay(self.config.overall_timeout)),
            sleep=self._sleep,
            before_sleep=self._log_retry,
        )
        try:
            return retrying(self._call_once, method, params)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            self.log_error("RPC retries exhausted",
                           method=method,
                           attempt=e.last_attempt.attempt_number,
                           error=str(last_error))
            raise RpcRetriesExhausted(
                f"{method} failed after {e.last_attempt.attempt_number} attempts: {last_error}",
                method=method,
                code=getattr(last_error, "code", None),
            ) from last_error

    def _call_once(self, method: str, params: List[Any]) -> Any:
        self.rate_limiter.acquire()

        try:
            response = self.w3.provider.make_request(method, params)
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status is None or status >= 500 or status in TRANSIENT_HTTP_STATUS:
                raise TransientRpcError(f"HTTP {status} from node", method=method, code=status) from e
            raise FatalRpcError(f"HTTP {status} from node", method=method, code=status) from e
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientRpcError(f"Connection to node failed: {e}", method=method) from e
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as e:
            raise FatalRpcError(f"Bad node endpoint: {e}", method=method) from e
        except requests.exceptions.RequestException as e:
            # Broken chunked bodies, decoding failures, redirect loops
            raise TransientRpcError(f"Request to node failed: {e}", method=method) from e
        except ValueError as e:
            # Non-JSON bodies are what overloaded providers send instead of errors
            raise TransientRpcError(f"Unparsable response from node: {e}", method=method) from e

        return self._unwrap(method, response)

    def _unwrap(self, method: str, response: Any) -> Any:
        if not isinstance(response, dict):
            raise TransientRpcError(f"Unexpected response body from node: {response!r}",
                                    method=method)

        error = response.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            if code in TRANSIENT_RPC_CODES:
                raise TransientRpcError(f"RPC error {code}: {message}", method=method, code=code)
            raise FatalRpcError(f"RPC error {code}: {message}", method=method, code=code)

        if "result" not in response:
            raise FatalRpcError(f"RPC response without result: {response!r}", method=method)
        return response["result"]

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self.log_warning("Transient RPC failure, backing off",
                         method=getattr(exc, "method", None),
                         attempt=retry_state.attempt_number,
                         delay=retry_state.next_action.sleep if retry_state.next_action else None,
                         error=str(exc))
