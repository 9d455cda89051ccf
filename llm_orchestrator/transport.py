"""
Transports for talking to the LLM server.

HttpTransport issues requests with httpx. CurlTransport issues the same
request through a curl subprocess, and FallbackTransport uses it only when
the HTTP client cannot connect. Transports never retry; retry policy lives
with the callers.
"""

import base64
import json
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .errors import NetworkError, RequestTimeoutError, TransportConnectError
from .types import ExecutorConfig


logger = logging.getLogger(__name__)

# curl exit codes
CURL_COULDNT_CONNECT = 7
CURL_OPERATION_TIMEDOUT = 28


@dataclass(frozen=True)
class TransportRequest:
    method: str
    path: str
    payload: Optional[Dict[str, Any]] = None
    timeout: float = 300.0


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str
    via: str = "http"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body. Raises NetworkError if it is not JSON."""
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as e:
            raise NetworkError(f"Malformed JSON from server: {self.body[:200]!r}") from e


def normalize_base_url(base_url: str) -> str:
    """Strip endpoint paths and trailing slashes so only the host remains."""
    host = base_url.strip()
    for suffix in ('/api/chat', '/api/generate', '/v1/chat/completions'):
        host = host.replace(suffix, '')
    return host.rstrip('/')


def build_headers(config: ExecutorConfig) -> Dict[str, str]:
    """Request headers, with basic auth when credentials are configured."""
    headers = {'Content-Type': 'application/json'}
    if config.username and config.password:
        credentials = f"{config.username}:{config.password}"
        encoded = base64.b64encode(credentials.encode()).decode()
        headers['Authorization'] = f'Basic {encoded}'
    return headers


class Transport(ABC):
    """Issues a single request/response exchange with the LLM server."""

    name = "transport"

    @abstractmethod
    def send(self, request: TransportRequest) -> TransportResponse:
        """
        Send one request.

        Returns the response for any HTTP status; HTTP-level errors are the
        caller's to interpret.

        Raises:
            TransportConnectError: The server could not be reached
            RequestTimeoutError: The request timed out
            NetworkError: Any other transport failure
        """

    def close(self) -> None:
        pass


class HttpTransport(Transport):
    """Primary transport built on an httpx client."""

    name = "http"

    def __init__(self, config: ExecutorConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self.base_url = normalize_base_url(config.base_url)
        self.client = client or httpx.Client(
            base_url=self.base_url,
            headers=build_headers(config),
            verify=config.verify_ssl,
            timeout=httpx.Timeout(config.request_timeout, connect=config.connect_timeout),
        )
        logger.info(f"HTTP transport initialized: {self.base_url}")

    def send(self, request: TransportRequest) -> TransportResponse:
        timeout = httpx.Timeout(
            request.timeout,
            connect=min(self.config.connect_timeout, request.timeout),
        )
        logger.debug(f"{request.method} {request.path} payload={request.payload}")
        try:
            response = self.client.request(
                request.method,
                request.path,
                json=request.payload,
                timeout=timeout,
            )
        except httpx.ConnectError as e:
            raise TransportConnectError(f"Could not connect to {self.base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"{request.method} {request.path} timed out after {request.timeout}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{request.method} {request.path} failed: {e}") from e

        logger.debug(f"Response status: {response.status_code}")
        return TransportResponse(response.status_code, response.text, via=self.name)

    def close(self) -> None:
        self.client.close()


class CurlTransport(Transport):
    """
    Fallback transport that runs curl as a subprocess.

    The request is rebuilt from the same method, path, headers and JSON
    payload. curl's stdout is the response body; the status code is
    appended by --write-out on a final line.
    """

    name = "curl"

    def __init__(self, config: ExecutorConfig, binary: str = "curl"):
        self.config = config
        self.binary = binary
        self.base_url = normalize_base_url(config.base_url)
        self.headers = build_headers(config)

    def build_command(self, request: TransportRequest) -> List[str]:
        command = [
            self.binary, '-s', '-S',
            '-X', request.method,
            f"{self.base_url}{request.path}",
            '--connect-timeout', str(min(self.config.connect_timeout, request.timeout)),
            '--max-time', str(request.timeout),
            '--write-out', '\n%{http_code}',
        ]
        for key, value in self.headers.items():
            command += ['-H', f"{key}: {value}"]
        if not self.config.verify_ssl:
            command.append('-k')
        if request.payload is not None:
            command += ['-d', json.dumps(request.payload)]
        return command

    def send(self, request: TransportRequest) -> TransportResponse:
        command = self.build_command(request)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                encoding='utf-8',
                errors='replace',
                # Give curl's own --max-time a chance to fire first
                timeout=request.timeout + 5,
            )
        except subprocess.TimeoutExpired as e:
            raise RequestTimeoutError(f"curl {request.method} {request.path} timed out after {request.timeout}s") from e
        except FileNotFoundError as e:
            raise NetworkError(f"Command '{self.binary}' not found") from e
        except OSError as e:
            raise NetworkError(f"curl could not be started: {e}") from e

        if result.returncode == CURL_OPERATION_TIMEDOUT:
            raise RequestTimeoutError(f"curl {request.method} {request.path} timed out after {request.timeout}s")
        if result.returncode == CURL_COULDNT_CONNECT:
            raise TransportConnectError(f"curl could not connect to {self.base_url} (exit code {result.returncode})")
        if result.returncode != 0:
            error = (result.stderr or '').strip()
            raise NetworkError(f"curl failed with exit code {result.returncode}: {error}")

        body, _, status = result.stdout.rpartition('\n')
        try:
            status_code = int(status.strip())
        except ValueError:
            raise NetworkError(f"curl returned no status code: {result.stdout[:200]!r}")
        if status_code == 0:
            raise NetworkError("curl received no HTTP response")

        logger.debug(f"curl response status: {status_code}")
        return TransportResponse(status_code, body, via=self.name)


class FallbackTransport(Transport):
    """Send through the primary transport, falling back once on connection failure."""

    def __init__(self, primary: Transport, fallback: Transport):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def send(self, request: TransportRequest) -> TransportResponse:
        try:
            return self.primary.send(request)
        except TransportConnectError as e:
            logger.warning(f"{self.primary.name} connection failed ({e.message}), trying {self.fallback.name} fallback")
            response = self.fallback.send(request)
            logger.info(f"{self.fallback.name} fallback succeeded for {request.method} {request.path}")
            return response

    def close(self) -> None:
        self.primary.close()
        self.fallback.close()


def build_transport(config: ExecutorConfig) -> Transport:
    """HTTP transport with a curl fallback."""
    return FallbackTransport(HttpTransport(config), CurlTransport(config))
