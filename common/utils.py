"""
Funções utilitárias compartilhadas: leitura de ambiente e endereços de peers.
"""
import os
from typing import Any, List, Tuple

def get_env_var(var_name: str, default: Any = None) -> Any:
    """
    Obtém uma variável de ambiente, com valor padrão opcional.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão caso a variável não exista

    Returns:
        Valor da variável de ambiente ou o valor padrão
    """
    return os.environ.get(var_name, default)

def get_env_str(var_name: str, default: str = None) -> str:
    """Obtém uma variável de ambiente como string (vazia conta como ausente)."""
    value = get_env_var(var_name)
    if value is None or value.strip() == "":
        return default
    return value.strip()

def get_env_int(var_name: str, default: int = None) -> int:
    """
    Obtém uma variável de ambiente convertida para inteiro.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão caso a variável não exista

    Returns:
        int: Valor convertido

    Raises:
        ValueError: Se o valor não for um inteiro válido
    """
    value = get_env_str(var_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Variável {var_name} deve ser inteira, recebido: {value!r}")

def get_env_float(var_name: str, default: float = None) -> float:
    """
    Obtém uma variável de ambiente convertida para float.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão caso a variável não exista

    Returns:
        float: Valor convertido

    Raises:
        ValueError: Se o valor não for numérico
    """
    value = get_env_str(var_name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Variável {var_name} deve ser numérica, recebido: {value!r}")

def get_debug_mode() -> bool:
    """
    Verifica se o modo de depuração está ativado.

    Returns:
        bool: True se o modo de depuração estiver ativado, False caso contrário
    """
    debug_env = get_env_var("DEBUG", "false").lower()
    return debug_env in ("true", "1", "yes")

def parse_peer_list(raw: str) -> List[str]:
    """
    Converte uma lista de peers separada por vírgulas em uma lista ordenada.

    A ordem é preservada: ela define o particionamento e deve ser idêntica
    em todos os nós do cluster.

    Args:
        raw: String no formato "host1:port1,host2:port2"

    Returns:
        List[str]: Endereços dos peers, sem espaços e sem entradas vazias
    """
    if not raw:
        return []
    return [peer.strip() for peer in raw.split(",") if peer.strip()]

def split_address(address: str) -> Tuple[str, int]:
    """
    Separa um endereço "host:port" em host e porta.

    Raises:
        ValueError: Se o endereço não tiver porta inteira válida
    """
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Endereço inválido (esperado host:port): {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Porta inválida no endereço {address!r}")
    if not 0 < port_number < 65536:
        raise ValueError(f"Porta fora do intervalo no endereço {address!r}")
    return host, port_number
