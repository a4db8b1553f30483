import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from common.logging import setup_logging
from common.metrics import start_metrics_server
from kvnode.api import create_app
from kvnode.config import (
    ConfigurationError,
    NodeConfig,
    build_node_config,
    load_settings,
    local_cluster_configs,
)

# Configuração do logger
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Nó do serviço chave-valor particionado')
    parser.add_argument('--peers', type=str, help='Lista ordenada de peers host:port separados por vírgula (inclui este nó)')
    parser.add_argument('--port', type=int, help='Porta do servidor HTTP')
    parser.add_argument('--name', type=str, help='Nome deste nó (padrão: server{porta})')
    parser.add_argument('--host', type=str, help='Endereço de bind (padrão: 0.0.0.0)')
    parser.add_argument('--self-addr', type=str, help='Endereço deste nó na lista de peers (padrão: {nome}:{porta})')
    parser.add_argument('--config', dest='config_file', type=str, help='Arquivo de configuração YAML')
    parser.add_argument('--metrics-port', type=int, help='Porta do servidor de métricas Prometheus (0 desativa)')
    parser.add_argument('--debug', action='store_true', default=None, help='Ativa o modo de depuração')
    return parser.parse_args(argv)


def build_server(config: NodeConfig) -> uvicorn.Server:
    """
    Cria o servidor uvicorn de um nó.
    """
    app = create_app(config)
    server_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level="debug" if config.debug else "info",
        log_config=None,
    )
    return uvicorn.Server(server_config)


async def serve(configs: List[NodeConfig]):
    """
    Executa um ou mais nós no mesmo event loop.
    """
    servers = []
    for config in configs:
        logger.info(f"{config.name} executando em {config.self_address} "
                    f"(bind {config.host}:{config.port}) com peers: {list(config.peers)}")
        servers.append(build_server(config))
    await asyncio.gather(*(server.serve() for server in servers))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Função principal do nó.

    Com PEERS (ou --peers) executa um único nó; sem peers, sobe o cluster
    local de desenvolvimento com três nós em 127.0.0.1:8001..8003.
    """
    args = parse_args(argv)

    try:
        settings = load_settings(vars(args))
        if settings["peers"]:
            configs = [build_node_config(settings)]
        else:
            configs = local_cluster_configs(settings)
    except (ConfigurationError, ValueError) as e:
        setup_logging("kvnode")
        logger.error(f"Configuração inválida: {e}")
        return 2

    component = configs[0].name if len(configs) == 1 else "kvnode-local"
    setup_logging(component, configs[0].debug, configs[0].log_dir)

    if len(configs) > 1:
        logger.info("PEERS não definido: iniciando cluster local com três nós")

    start_metrics_server(configs[0].metrics_port)

    asyncio.run(serve(configs))
    return 0


if __name__ == "__main__":
    sys.exit(main())
