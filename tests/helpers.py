"""
Funções auxiliares compartilhadas pelos testes.
"""
import httpx

from kvnode.config import NodeConfig
from kvnode.partition import owner_of

PEERS = ("server1:8001", "server2:8002", "server3:8003")


def key_owned_by(peer, peers=PEERS, prefix="key"):
    """Encontra uma chave cujo dono é o peer indicado."""
    for i in range(10000):
        key = f"{prefix}-{i}"
        if owner_of(key, peers) == peer:
            return key
    raise AssertionError(f"Nenhuma chave encontrada para {peer}")


def make_config(self_address="server1:8001", peers=PEERS, **kwargs):
    """Cria um NodeConfig de teste."""
    name = self_address.split(":")[0]
    return NodeConfig(name=name, self_address=self_address, peers=peers, **kwargs)


def unreachable_transport(calls=None):
    """Transporte httpx em que todo peer recusa a conexão."""
    def handler(request):
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("Falha de conexão simulada", request=request)
    return httpx.MockTransport(handler)
