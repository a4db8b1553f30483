"""
Nó do serviço chave-valor particionado.

Cada nó atende uma partição disjunta do espaço de chaves e encaminha de
forma transparente as requisições de chaves que pertencem a outro peer.

Responsabilidades:
- Calcular o dono de uma chave (hash CRC-32 módulo número de peers)
- Atender localmente as chaves próprias usando o store em memória
- Encaminhar as demais ao dono, com retentativas limitadas
"""

__version__ = "1.0.0"
