"""
Roteamento de requisições do nó.

Para cada requisição: interpreta a entrada, resolve o dono da chave e
atende localmente pelo Store ou encaminha ao dono pelo RemoteCaller.
Todo caminho termina em exatamente um RouteResult.
"""
import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import structlog

from common.communication import RemoteCaller, RemoteResponse, RetriesExhausted
from common.metrics import node_metrics
from kvnode.config import NodeConfig
from kvnode.store import Store

log = structlog.get_logger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"


class BadRequest(Exception):
    """Entrada inválida do cliente; respondida com 400 sem corpo."""


@dataclass(frozen=True)
class RouteResult:
    """Resultado de uma requisição roteada, independente do framework HTTP."""
    status_code: int
    body: bytes = b""
    media_type: Optional[str] = None


def json_result(payload: Any, status_code: int = 200) -> RouteResult:
    return RouteResult(status_code, json.dumps(payload).encode("utf-8"), JSON_MEDIA_TYPE)


def empty_result(status_code: int) -> RouteResult:
    return RouteResult(status_code)


def relay_result(remote: RemoteResponse) -> RouteResult:
    """Repassa status e corpo da resposta definitiva do dono sem alterações."""
    media_type = None
    if remote.body:
        media_type = remote.content_type or JSON_MEDIA_TYPE
    return RouteResult(remote.status_code, remote.body, media_type)


def _reject_constant(name: str):
    # NaN e Infinity não são JSON válido e não podem ser reenviados ao dono
    raise BadRequest(f"constante não suportada: {name}")


def parse_single_pair(body: bytes) -> Tuple[str, Any]:
    """
    Interpreta o corpo de um POST.

    O corpo deve ser um objeto JSON com exatamente um par chave-valor e a
    chave não pode ser vazia (ela não seria legível por GET /{key}).

    Raises:
        BadRequest: Se o corpo não seguir esse formato
    """
    try:
        payload = json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError):
        raise BadRequest("corpo não é JSON válido")
    if not isinstance(payload, dict):
        raise BadRequest("corpo deve ser um objeto JSON")
    if len(payload) != 1:
        raise BadRequest(f"esperado exatamente um par chave-valor, recebido {len(payload)}")
    key, value = next(iter(payload.items()))
    if key == "":
        raise BadRequest("chave vazia")
    return key, value


def require_key(key: str) -> str:
    if not key:
        raise BadRequest("chave vazia")
    return key


class RequestRouter:
    """
    Decide entre atendimento local e encaminhamento para cada operação.

    Política de falhas por verbo:
    - leitura: qualquer resultado remoto diferente de 200 (inclusive
      esgotamento das tentativas) vira 404
    - escrita e remoção: esgotamento vira 502; respostas definitivas são
      repassadas sem alteração
    """

    def __init__(self, config: NodeConfig, store: Store, caller: RemoteCaller):
        self.config = config
        self.store = store
        self.caller = caller

    async def handle_set(self, body: bytes) -> RouteResult:
        key, value = parse_single_pair(body)
        owner = self.config.owner_for(key)

        if self.config.is_self(owner):
            await self.store.set(key, value)
            self._update_store_gauge()
            log.debug("Chave gravada localmente", key=key)
            return json_result({key: value})

        try:
            remote = await self.caller.call("set", owner, key, value)
        except RetriesExhausted:
            return empty_result(502)
        return relay_result(remote)

    async def handle_get(self, key: str) -> RouteResult:
        key = require_key(key)
        owner = self.config.owner_for(key)

        if self.config.is_self(owner):
            found, value = await self.store.lookup(key)
            if not found:
                return empty_result(404)
            return json_result({key: value})

        try:
            remote = await self.caller.call("get", owner, key)
        except RetriesExhausted:
            return empty_result(404)
        if remote.status_code != 200:
            log.debug("Leitura remota sem sucesso tratada como ausente",
                      key=key, peer=owner, status=remote.status_code)
            return empty_result(404)
        return relay_result(remote)

    async def handle_delete(self, key: str) -> RouteResult:
        key = require_key(key)
        owner = self.config.owner_for(key)

        if self.config.is_self(owner):
            removed = await self.store.delete(key)
            self._update_store_gauge()
            return json_result(removed)

        try:
            remote = await self.caller.call("delete", owner, key)
        except RetriesExhausted:
            return empty_result(502)
        return relay_result(remote)

    def health(self) -> RouteResult:
        # Não consulta o particionamento: reporta apenas o processo
        return json_result({"status": "ok"})

    def _update_store_gauge(self):
        node_metrics["store_keys"].labels(node=self.config.name).set(len(self.store))
