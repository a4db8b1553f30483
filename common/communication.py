"""
Módulo de comunicação entre nós.
Fornece o cliente HTTP usado para encaminhar requisições ao nó dono de uma
chave, com timeout curto por tentativa e retentativas com intervalo fixo.
"""
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Dict
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from common.metrics import node_metrics

log = structlog.get_logger(__name__)

# Valores padrão das chamadas remotas
DEFAULT_TIMEOUT = 0.2  # 200ms para connect/read/write/pool
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.1  # 100ms entre tentativas, sem backoff

OPERATIONS = ("get", "set", "delete")


class RemoteCallError(Exception):
    """Erro base das chamadas entre nós."""


class RetriesExhausted(RemoteCallError):
    """
    Todas as tentativas falharam sem uma resposta definitiva do dono.

    Attributes:
        operation: Operação encaminhada (get, set, delete)
        peer: Endereço do nó dono
        key: Chave da requisição
        attempts: Número de tentativas realizadas
        last_error: Descrição da última falha
    """

    def __init__(self, operation: str, peer: str, key: str, attempts: int, last_error: str):
        self.operation = operation
        self.peer = peer
        self.key = key
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} {key!r} em {peer}: {attempts} tentativas falharam ({last_error})"
        )


class TransientResponse(Exception):
    """Resposta 5xx do dono; tratada como falha transitória."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


@dataclass(frozen=True)
class RemoteResponse:
    """Resposta definitiva (não 5xx) recebida do nó dono."""
    status_code: int
    body: bytes
    content_type: Optional[str] = None


class RemoteCaller:
    """
    Cliente para chamadas get/set/delete contra a interface HTTP de um peer.

    Características:
    1. Uma requisição por tentativa, com timeout curto
    2. Falhas de transporte e respostas 5xx são retentadas
    3. Qualquer outra resposta é devolvida imediatamente
    4. Intervalo fixo entre tentativas, sem backoff exponencial nem jitter
    """

    def __init__(self, node_name: str = "", timeout: float = DEFAULT_TIMEOUT,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 retry_delay: float = DEFAULT_RETRY_DELAY,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Inicializa o cliente.

        Args:
            node_name: Nome do nó local (para logs e métricas)
            timeout: Timeout de cada fase (connect/read/write/pool) por tentativa, em segundos
            max_attempts: Número máximo de tentativas por chamada
            retry_delay: Intervalo fixo entre tentativas, em segundos
            transport: Transporte httpx alternativo (usado em testes)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts deve ser pelo menos 1")
        if retry_delay < 0:
            raise ValueError("retry_delay não pode ser negativo")
        self.node_name = node_name
        self.timeout = httpx.Timeout(timeout)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._transport = transport
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Obtém o cliente HTTP assíncrono, criando-o se necessário.

        Returns:
            httpx.AsyncClient: Cliente HTTP assíncrono
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Fecha o cliente HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_request(self, operation: str, peer: str, key: str,
                      value: Any = None) -> Tuple[str, str, Dict[str, Any]]:
        """
        Traduz uma operação para a requisição equivalente na interface pública do peer.

        Returns:
            Tupla (método, url, argumentos extras do httpx)
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Operação desconhecida: {operation}")
        base_url = f"http://{peer}"
        if operation == "set":
            return "POST", f"{base_url}/", {"json": {key: value}}
        method = "GET" if operation == "get" else "DELETE"
        return method, f"{base_url}/{quote(key, safe='')}", {}

    async def call(self, operation: str, peer: str, key: str, value: Any = None) -> RemoteResponse:
        """
        Executa uma chamada remota com retentativas.

        Args:
            operation: "get", "set" ou "delete"
            peer: Endereço host:port do nó dono
            key: Chave da operação
            value: Valor (apenas para "set")

        Returns:
            RemoteResponse: Primeira resposta definitiva (status < 500)

        Raises:
            RetriesExhausted: Se todas as tentativas falharem de forma transitória
        """
        method, url, extra = self.build_request(operation, peer, key, value)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type((httpx.TransportError, TransientResponse)),
            before_sleep=self._before_retry(operation, peer, key),
        )

        started = time.monotonic()
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self.client.request(method, url, **extra)
                    if response.status_code >= 500:
                        raise TransientResponse(response)
        except RetryError as e:
            last_error = _describe(e.last_attempt.exception())
            node_metrics["forward_total"].labels(
                node=self.node_name, operation=operation, result="exhausted"
            ).inc()
            log.error("Todas as tentativas de encaminhamento falharam",
                      operation=operation, peer=peer, key=key,
                      attempts=self.max_attempts, error=last_error)
            raise RetriesExhausted(operation, peer, key, self.max_attempts, last_error) from e
        finally:
            node_metrics["forward_latency"].labels(
                node=self.node_name, operation=operation
            ).observe(time.monotonic() - started)

        node_metrics["forward_total"].labels(
            node=self.node_name, operation=operation, result="ok"
        ).inc()
        log.debug("Resposta definitiva do dono", operation=operation, peer=peer,
                  key=key, status=response.status_code)
        return RemoteResponse(
            status_code=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type"),
        )

    def _before_retry(self, operation: str, peer: str, key: str):
        def before_sleep(retry_state):
            node_metrics["forward_retries"].labels(
                node=self.node_name, operation=operation
            ).inc()
            log.warning("Tentativa de encaminhamento falhou",
                        operation=operation, peer=peer, key=key,
                        attempt=retry_state.attempt_number,
                        error=_describe(retry_state.outcome.exception()),
                        retry_in=self.retry_delay)
        return before_sleep


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "desconhecido"
    return f"{type(error).__name__}: {error}"
