"""
Configuração de métricas Prometheus para os nós do cluster.
"""
import logging

from prometheus_client import Counter, Histogram, Gauge, start_http_server

logger = logging.getLogger(__name__)


node_metrics = {
    "requests_total": Counter(
        "kv_requests_total",
        "Número total de requisições atendidas pelo nó",
        ["node", "method", "outcome"]
    ),
    "forward_total": Counter(
        "kv_forward_total",
        "Número de chamadas encaminhadas ao dono da chave",
        ["node", "operation", "result"]
    ),
    "forward_retries": Counter(
        "kv_forward_retries_total",
        "Número de retentativas em chamadas encaminhadas",
        ["node", "operation"]
    ),
    "forward_latency": Histogram(
        "kv_forward_latency_seconds",
        "Duração total de uma chamada encaminhada, incluindo retentativas",
        ["node", "operation"]
    ),
    "store_keys": Gauge(
        "kv_store_keys",
        "Número de chaves no store local",
        ["node"]
    ),
}


def start_metrics_server(port: int) -> bool:
    """
    Inicia o servidor HTTP do Prometheus em porta separada.

    Args:
        port: Porta do servidor de métricas; 0 desativa

    Returns:
        bool: True se o servidor foi iniciado
    """
    if not port:
        return False
    start_http_server(port)
    logger.info(f"Servidor de métricas iniciado na porta {port}")
    return True
