"""
Interface HTTP do nó (FastAPI).

    POST   /        corpo {"chave": valor}  -> 200 {"chave": valor}
    GET    /health                          -> 200 {"status": "ok"}
    GET    /{key}                           -> 200 {"chave": valor} | 404
    DELETE /{key}                           -> 200 1 | 0

Respostas de erro não têm corpo. A mesma interface é usada entre os nós
para o encaminhamento.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.communication import RemoteCaller
from common.metrics import node_metrics
from kvnode.config import NodeConfig
from kvnode.router import BadRequest, RequestRouter, RouteResult
from kvnode.store import Store

# Configura o logger
logger = logging.getLogger(__name__)


def to_response(result: RouteResult) -> Response:
    return Response(content=result.body, status_code=result.status_code, media_type=result.media_type)


def create_app(config: NodeConfig, store: Optional[Store] = None,
               caller: Optional[RemoteCaller] = None) -> FastAPI:
    """
    Cria a aplicação de um nó.

    Args:
        config: Configuração do nó
        store: Store local (um novo é criado se omitido)
        caller: Cliente para os peers (criado a partir da configuração se omitido)

    Returns:
        FastAPI: Aplicação pronta para o uvicorn
    """
    store = store if store is not None else Store()
    if caller is None:
        caller = RemoteCaller(
            node_name=config.name,
            timeout=config.rpc_timeout,
            max_attempts=config.rpc_max_attempts,
            retry_delay=config.rpc_retry_delay,
        )
    router = RequestRouter(config, store, caller)

    app = FastAPI(title=f"KV Node {config.name}", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.store = store
    app.state.router = router

    # Middleware para logging e contagem de requisições
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug(f"Requisição recebida: {request.method} {request.url.path}")
        response = await call_next(request)
        logger.debug(f"Resposta enviada: {response.status_code}")
        node_metrics["requests_total"].labels(
            node=config.name, method=request.method, outcome=str(response.status_code)
        ).inc()
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Método ou caminho não suportado: apenas o status, sem corpo
        return Response(status_code=exc.status_code)

    @app.exception_handler(BadRequest)
    async def bad_request_handler(request: Request, exc: BadRequest):
        logger.debug(f"Requisição inválida {request.method} {request.url.path}: {exc}")
        return Response(status_code=400)

    @app.on_event("shutdown")
    async def shutdown_event():
        await caller.close()
        logger.info(f"Nó {config.name} encerrado")

    @app.post("/")
    async def set_value(request: Request):
        """
        Grava um par chave-valor (no próprio nó ou no dono da chave).
        """
        body = await request.body()
        return to_response(await router.handle_set(body))

    @app.get("/health")
    async def health_check():
        """
        Endpoint para verificação de saúde do processo.
        """
        return to_response(router.health())

    @app.get("/{key:path}")
    async def get_value(key: str):
        """
        Lê o valor de uma chave.
        """
        return to_response(await router.handle_get(key))

    @app.delete("/{key:path}")
    async def delete_value(key: str):
        """
        Remove uma chave e retorna o número de entradas removidas.
        """
        return to_response(await router.handle_delete(key))

    return app
