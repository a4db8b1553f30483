"""
Mapeamento determinístico de chave para o nó dono.
"""
import zlib
from typing import Sequence


def owner_index(key: str, peers: Sequence[str]) -> int:
    """
    Retorna o índice do peer dono da chave.

    Usa CRC-32 dos bytes UTF-8 da chave: diferente do ``hash()`` nativo, o
    resultado não depende de PYTHONHASHSEED e é o mesmo em todos os nós.

    Args:
        key: Chave da requisição
        peers: Lista ordenada de peers, idêntica em todo o cluster

    Returns:
        int: Índice em [0, len(peers))

    Raises:
        ValueError: Se a lista de peers estiver vazia
    """
    if not peers:
        raise ValueError("A lista de peers não pode ser vazia")
    return zlib.crc32(key.encode("utf-8")) % len(peers)


def owner_of(key: str, peers: Sequence[str]) -> str:
    """Retorna o endereço do peer dono da chave."""
    return peers[owner_index(key, peers)]
