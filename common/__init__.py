"""
Código compartilhado pelos nós: comunicação entre peers, logging, métricas e utilitários.
"""
