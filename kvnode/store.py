"""
Store chave-valor em memória do nó.
"""
import asyncio
import copy
from typing import Any, Optional, Tuple


class Store:
    """
    Mapeamento chave -> valor JSON protegido por um único lock.

    Cada operação é atômica em relação às demais; não há atomicidade entre
    chaves nem persistência.
    """

    def __init__(self):
        self._data = {}
        self._lock_instance = None

    @property
    def _lock(self) -> asyncio.Lock:
        # Criado no primeiro uso, dentro do loop que serve as requisições
        if self._lock_instance is None:
            self._lock_instance = asyncio.Lock()
        return self._lock_instance

    async def set(self, key: str, value: Any) -> None:
        """Insere ou sobrescreve o valor da chave."""
        value = copy.deepcopy(value)
        async with self._lock:
            self._data[key] = value

    async def lookup(self, key: str) -> Tuple[bool, Any]:
        """
        Obtém o valor da chave distinguindo ausência de um valor null.

        Returns:
            Tupla (encontrado, cópia do valor)
        """
        async with self._lock:
            if key not in self._data:
                return False, None
            value = self._data[key]
        return True, copy.deepcopy(value)

    async def get(self, key: str) -> Optional[Any]:
        """Obtém o valor atual da chave, ou None se ela não existir."""
        _, value = await self.lookup(key)
        return value

    async def delete(self, key: str) -> int:
        """
        Remove a chave se existir.

        Returns:
            int: 1 se algo foi removido, 0 caso contrário
        """
        async with self._lock:
            if key in self._data:
                del self._data[key]
                return 1
            return 0

    def __len__(self) -> int:
        return len(self._data)
