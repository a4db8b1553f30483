"""
Configurações do nó.

Precedência (da menor para a maior): valores padrão, arquivo YAML
(CONFIG_FILE ou --config), variáveis de ambiente e argumentos de linha de
comando. O resultado é um NodeConfig imutável, construído uma única vez na
inicialização e passado explicitamente ao roteador e ao cliente remoto.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from common.communication import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT
from common.utils import (
    get_debug_mode,
    get_env_float,
    get_env_int,
    get_env_str,
    parse_peer_list,
    split_address,
)
from kvnode.partition import owner_of

# Cluster de desenvolvimento local (sem PEERS): três nós no mesmo processo
LOCAL_PEERS = ("127.0.0.1:8001", "127.0.0.1:8002", "127.0.0.1:8003")
DEFAULT_PORT = 8001

DEFAULTS = {
    "peers": None,
    "port": None,
    "name": None,
    "host": "0.0.0.0",
    "self_addr": None,
    "rpc_timeout": DEFAULT_TIMEOUT,
    "rpc_max_attempts": DEFAULT_MAX_ATTEMPTS,
    "rpc_retry_delay": DEFAULT_RETRY_DELAY,
    "metrics_port": 0,
    "debug": False,
    "log_dir": "",
}


class ConfigurationError(ValueError):
    """Configuração inválida detectada na inicialização."""


@dataclass(frozen=True)
class NodeConfig:
    """Configuração imutável de um nó do cluster."""
    name: str
    self_address: str
    peers: Tuple[str, ...]
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    rpc_timeout: float = DEFAULT_TIMEOUT
    rpc_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    rpc_retry_delay: float = DEFAULT_RETRY_DELAY
    metrics_port: int = 0
    debug: bool = False
    log_dir: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "peers", tuple(self.peers))
        self._validate()

    def _validate(self):
        if not self.peers:
            raise ConfigurationError("A lista de peers não pode ser vazia")
        if len(set(self.peers)) != len(self.peers):
            raise ConfigurationError(f"Peers duplicados na lista: {list(self.peers)}")
        for peer in self.peers:
            try:
                split_address(peer)
            except ValueError as e:
                raise ConfigurationError(str(e))
        if self.self_address not in self.peers:
            raise ConfigurationError(
                f"O endereço do próprio nó ({self.self_address}) não está na lista de peers {list(self.peers)}"
            )
        if self.rpc_max_attempts < 1:
            raise ConfigurationError("rpc_max_attempts deve ser pelo menos 1")
        if self.rpc_retry_delay < 0:
            raise ConfigurationError("rpc_retry_delay não pode ser negativo")
        if self.rpc_timeout <= 0:
            raise ConfigurationError("rpc_timeout deve ser positivo")

    def owner_for(self, key: str) -> str:
        """Endereço do peer dono da chave."""
        return owner_of(key, self.peers)

    def is_self(self, address: str) -> bool:
        return address == self.self_address


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Carrega um arquivo de configuração YAML.

    Formato esperado (todas as seções são opcionais):

        node: {name: server1, host: 0.0.0.0, port: 8001, self_addr: server1:8001}
        cluster: {peers: [server1:8001, server2:8002, server3:8003]}
        rpc: {timeout: 0.2, max_attempts: 3, retry_delay: 0.1}
        metrics: {port: 9101}
        logging: {debug: false, dir: /data/logs}

    Returns:
        Dict[str, Any]: Configurações no formato plano usado por load_settings
    """
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Não foi possível ler {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML inválido em {path}: {e}")

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} deve conter um mapeamento")

    node = raw.get("node") or {}
    cluster = raw.get("cluster") or {}
    rpc = raw.get("rpc") or {}
    metrics = raw.get("metrics") or {}
    logging_section = raw.get("logging") or {}

    settings = {
        "name": node.get("name"),
        "host": node.get("host"),
        "port": node.get("port"),
        "self_addr": node.get("self_addr"),
        "peers": cluster.get("peers"),
        "rpc_timeout": rpc.get("timeout"),
        "rpc_max_attempts": rpc.get("max_attempts"),
        "rpc_retry_delay": rpc.get("retry_delay"),
        "metrics_port": metrics.get("port"),
        "debug": logging_section.get("debug"),
        "log_dir": logging_section.get("dir"),
    }
    return {k: v for k, v in settings.items() if v is not None}


def settings_from_environment() -> Dict[str, Any]:
    """Lê as configurações presentes nas variáveis de ambiente."""
    settings = {
        "peers": get_env_str("PEERS"),
        "port": get_env_int("PORT"),
        "name": get_env_str("NAME"),
        "host": get_env_str("HOST"),
        "self_addr": get_env_str("SELF_ADDR"),
        "rpc_timeout": get_env_float("RPC_TIMEOUT"),
        "rpc_max_attempts": get_env_int("RPC_MAX_ATTEMPTS"),
        "rpc_retry_delay": get_env_float("RPC_RETRY_DELAY"),
        "metrics_port": get_env_int("METRICS_PORT"),
        "log_dir": get_env_str("LOG_DIR"),
    }
    if "DEBUG" in os.environ:
        settings["debug"] = get_debug_mode()
    return {k: v for k, v in settings.items() if v is not None}


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Combina padrões, arquivo YAML, ambiente e argumentos de linha de comando.

    Args:
        overrides: Valores vindos da linha de comando (None é ignorado);
            a chave "config_file" indica o arquivo YAML

    Returns:
        Dict[str, Any]: Configurações resolvidas
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    config_file = overrides.pop("config_file", None) or get_env_str("CONFIG_FILE")

    settings = dict(DEFAULTS)
    if config_file:
        settings.update(load_config_file(config_file))
    settings.update(settings_from_environment())
    settings.update(overrides)

    if isinstance(settings["peers"], str):
        settings["peers"] = parse_peer_list(settings["peers"])
    return settings


def build_node_config(settings: Dict[str, Any]) -> NodeConfig:
    """
    Constrói a configuração de um nó a partir das configurações resolvidas.

    Padrões derivados: a porta é a do primeiro peer (ou 8001), o nome é
    "server{porta}" e o endereço próprio é "{nome}:{porta}", que deve
    coincidir com uma entrada da lista de peers.
    """
    peers = list(settings.get("peers") or [])
    if not peers:
        raise ConfigurationError("Nenhum peer configurado (defina PEERS ou --peers)")

    port = settings.get("port")
    if port is None:
        try:
            port = split_address(peers[0])[1]
        except ValueError:
            port = DEFAULT_PORT
    name = settings.get("name") or f"server{port}"
    self_address = settings.get("self_addr") or f"{name}:{port}"

    return NodeConfig(
        name=name,
        self_address=self_address,
        peers=tuple(peers),
        host=settings.get("host") or DEFAULTS["host"],
        port=int(port),
        **_tunables(settings),
    )


def local_cluster_configs(settings: Dict[str, Any]) -> List[NodeConfig]:
    """
    Configurações do cluster local de desenvolvimento (três nós em 127.0.0.1:8001..8003).
    """
    configs = []
    for index, address in enumerate(LOCAL_PEERS, start=1):
        host, port = split_address(address)
        configs.append(NodeConfig(
            name=f"server{index}",
            self_address=address,
            peers=LOCAL_PEERS,
            host=host,
            port=port,
            **_tunables(settings),
        ))
    return configs


def _tunables(settings: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return {
            "rpc_timeout": float(settings.get("rpc_timeout", DEFAULT_TIMEOUT)),
            "rpc_max_attempts": int(settings.get("rpc_max_attempts", DEFAULT_MAX_ATTEMPTS)),
            "rpc_retry_delay": float(settings.get("rpc_retry_delay", DEFAULT_RETRY_DELAY)),
            "metrics_port": int(settings.get("metrics_port") or 0),
            "debug": bool(settings.get("debug", False)),
            "log_dir": settings.get("log_dir") or "",
        }
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Valor de configuração inválido: {e}")
