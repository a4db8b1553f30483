#!/usr/bin/env python3
"""
File: scripts/cluster_check.py
Ferramenta para verificar um cluster de nós chave-valor.
Consulta /health em todos os peers e, opcionalmente, executa uma rodada
gravação/leitura/remoção através de um nó qualquer.
"""
import sys
import json
import argparse
import uuid
from typing import List, Dict, Any

import requests

# Configurações padrão
DEFAULT_PEERS = "127.0.0.1:8001,127.0.0.1:8002,127.0.0.1:8003"
DEFAULT_TIMEOUT = 2.0

def parse_args():
    """Processa os argumentos da linha de comando."""
    parser = argparse.ArgumentParser(
        description="Verifica a saúde de um cluster chave-valor particionado"
    )
    parser.add_argument("--peers", "-p", type=str, default=DEFAULT_PEERS,
                        help=f"Peers host:port separados por vírgula (padrão: {DEFAULT_PEERS})")
    parser.add_argument("--smoke", "-s", action="store_true",
                        help="Executa gravação/leitura/remoção de uma chave de teste em cada nó")
    parser.add_argument("--timeout", "-t", type=float, default=DEFAULT_TIMEOUT,
                        help=f"Timeout por requisição em segundos (padrão: {DEFAULT_TIMEOUT})")
    return parser.parse_args()

def check_health(peer: str, timeout: float) -> Dict[str, Any]:
    """
    Consulta o endpoint de saúde de um peer.

    Args:
        peer: Endereço host:port
        timeout: Timeout da requisição

    Returns:
        Dict[str, Any]: Resultado da verificação
    """
    try:
        response = requests.get(f"http://{peer}/health", timeout=timeout)
    except requests.RequestException as e:
        return {"success": False, "peer": peer, "error": str(e)}

    if response.status_code == 200:
        return {"success": True, "peer": peer, "response": response.json()}
    return {"success": False, "peer": peer, "error": f"Status code: {response.status_code}"}

def smoke_round(peer: str, timeout: float) -> Dict[str, Any]:
    """
    Grava, lê e remove uma chave de teste através de um peer.

    Como a chave é aleatória, o dono pode ser outro nó: a rodada também
    exercita o encaminhamento.
    """
    key = f"cluster-check-{uuid.uuid4().hex[:8]}"
    value = {"via": peer}
    base_url = f"http://{peer}"
    steps = []

    try:
        response = requests.post(f"{base_url}/", json={key: value}, timeout=timeout)
        steps.append(("set", response.status_code, response.status_code == 200))

        response = requests.get(f"{base_url}/{key}", timeout=timeout)
        read_ok = response.status_code == 200 and response.json() == {key: value}
        steps.append(("get", response.status_code, read_ok))

        response = requests.delete(f"{base_url}/{key}", timeout=timeout)
        steps.append(("delete", response.status_code, response.status_code == 200 and response.text.strip() == "1"))
    except requests.RequestException as e:
        return {"success": False, "peer": peer, "key": key, "steps": steps, "error": str(e)}

    return {"success": all(ok for _, _, ok in steps), "peer": peer, "key": key, "steps": steps}

def main():
    """Função principal."""
    args = parse_args()
    peers: List[str] = [p.strip() for p in args.peers.split(",") if p.strip()]

    print(f"== Verificando saúde de {len(peers)} nós ==")
    results = []
    for peer in peers:
        result = check_health(peer, args.timeout)
        results.append(result)
        if result["success"]:
            print(f"✅ {peer}: {json.dumps(result['response'])}")
        else:
            print(f"❌ {peer}: Falha - {result.get('error', 'Erro desconhecido')}")

    if args.smoke:
        print("\n== Rodada gravação/leitura/remoção ==")
        for peer in peers:
            result = smoke_round(peer, args.timeout)
            results.append(result)
            steps = ", ".join(f"{name}={status}" for name, status, _ in result["steps"])
            if result["success"]:
                print(f"✅ {peer}: {result['key']} ({steps})")
            else:
                print(f"❌ {peer}: {result['key']} ({steps}) {result.get('error', '')}")

    success_count = sum(1 for r in results if r["success"])
    print(f"\n== Resumo: {success_count}/{len(results)} verificações bem-sucedidas ==")
    return 0 if success_count == len(results) else 1

if __name__ == "__main__":
    sys.exit(main())
