"""
Configuração global para testes.
Contém fixtures compartilhadas entre testes unitários e de integração.
"""
import logging

import pytest

from common.communication import RemoteCaller
from common.logging import configure_structlog
from tests.helpers import make_config, unreachable_transport

# Configurar logging para testes
logging.basicConfig(level=logging.DEBUG)
configure_structlog()


@pytest.fixture
def single_node_config():
    """Configuração de um cluster de um nó só: toda chave é local."""
    return make_config("127.0.0.1:8001", peers=("127.0.0.1:8001",))


@pytest.fixture
def cluster_config():
    """Configuração do server1 em um cluster de três nós."""
    return make_config()


@pytest.fixture
def forward_calls():
    """Lista de requisições recebidas pelo transporte simulado."""
    return []


@pytest.fixture
def unreachable_caller(forward_calls):
    """RemoteCaller cujo destino nunca responde (sem espera entre tentativas)."""
    return RemoteCaller(
        node_name="server1",
        max_attempts=3,
        retry_delay=0,
        transport=unreachable_transport(forward_calls),
    )
