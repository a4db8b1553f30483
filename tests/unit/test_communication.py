"""
Testes unitários para o RemoteCaller (encaminhamento entre nós).
"""
import json
import time

import httpx
import pytest

from common.communication import RemoteCaller, RemoteResponse, RetriesExhausted


def scripted_transport(responses, calls):
    """
    Transporte que devolve as respostas na ordem dada.
    Uma exceção na lista é levantada em vez de respondida.
    """
    script = list(responses)

    def handler(request):
        calls.append(request)
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        # Uma resposta nova por chamada: a última da lista pode ser reutilizada
        return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)
    return httpx.MockTransport(handler)


def make_caller(responses, calls, max_attempts=3):
    return RemoteCaller(
        node_name="test",
        max_attempts=max_attempts,
        retry_delay=0,
        transport=scripted_transport(responses, calls),
    )


@pytest.mark.asyncio
async def test_set_issues_post_with_single_pair():
    """Gravação remota vira POST / com o par no corpo."""
    # Arrange
    calls = []
    caller = make_caller([httpx.Response(200, json={"a": 1})], calls)

    # Act
    response = await caller.call("set", "server2:8002", "a", 1)
    await caller.close()

    # Assert
    assert response.status_code == 200
    assert json.loads(response.body) == {"a": 1}
    assert len(calls) == 1, "Resposta definitiva não deve gerar retentativa"
    assert calls[0].method == "POST"
    assert str(calls[0].url) == "http://server2:8002/"
    assert json.loads(calls[0].content) == {"a": 1}


@pytest.mark.asyncio
async def test_get_and_delete_quote_key_in_path():
    calls = []
    caller = make_caller([httpx.Response(200, content=b"1")], calls)

    await caller.call("get", "server2:8002", "a b/c")
    await caller.call("delete", "server2:8002", "x")
    await caller.close()

    assert calls[0].method == "GET"
    assert calls[0].url.raw_path == b"/a%20b%2Fc"
    assert calls[1].method == "DELETE"
    assert calls[1].url.path == "/x"


@pytest.mark.asyncio
async def test_client_error_is_definitive():
    """Resposta 4xx é devolvida imediatamente, sem retentativas."""
    # Arrange
    calls = []
    caller = make_caller([httpx.Response(404)], calls)

    # Act
    response = await caller.call("get", "server2:8002", "missing")
    await caller.close()

    # Assert
    assert response == RemoteResponse(status_code=404, body=b"", content_type=None)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried_until_success():
    """Respostas 5xx são transitórias e retentadas."""
    # Arrange
    calls = []
    caller = make_caller([
        httpx.Response(503),
        httpx.Response(500),
        httpx.Response(200, json={"a": 1}),
    ], calls)

    # Act
    response = await caller.call("get", "server2:8002", "a")
    await caller.close()

    # Assert
    assert response.status_code == 200
    assert len(calls) == 3, "Devem ocorrer duas retentativas antes do sucesso"


@pytest.mark.asyncio
async def test_transport_errors_are_retried():
    calls = []
    caller = make_caller([
        httpx.ConnectError("recusada"),
        httpx.ReadTimeout("lento"),
        httpx.Response(200, content=b"0"),
    ], calls)

    response = await caller.call("delete", "server2:8002", "a")
    await caller.close()

    assert response.status_code == 200
    assert response.body == b"0"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_exhaustion_raises_retries_exhausted():
    """Após o número máximo de tentativas a chamada falha com RetriesExhausted."""
    # Arrange
    calls = []
    caller = make_caller([httpx.ConnectError("recusada")], calls, max_attempts=4)

    # Act
    with pytest.raises(RetriesExhausted) as exc_info:
        await caller.call("set", "server3:8003", "a", 1)
    await caller.close()

    # Assert
    error = exc_info.value
    assert len(calls) == 4, "Devem ser feitas exatamente max_attempts tentativas"
    assert error.attempts == 4
    assert error.peer == "server3:8003"
    assert error.operation == "set"
    assert error.key == "a"
    assert "ConnectError" in error.last_error


@pytest.mark.asyncio
async def test_persistent_server_error_exhausts():
    calls = []
    caller = make_caller([httpx.Response(502)], calls, max_attempts=2)

    with pytest.raises(RetriesExhausted) as exc_info:
        await caller.call("get", "server2:8002", "a")
    await caller.close()

    assert len(calls) == 2
    assert "502" in exc_info.value.last_error


@pytest.mark.asyncio
async def test_single_attempt_does_not_retry():
    calls = []
    caller = make_caller([httpx.ConnectError("recusada")], calls, max_attempts=1)

    with pytest.raises(RetriesExhausted):
        await caller.call("get", "server2:8002", "a")
    await caller.close()

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unknown_operation_is_rejected():
    caller = make_caller([httpx.Response(200)], [])

    with pytest.raises(ValueError):
        await caller.call("put", "server2:8002", "a")
    await caller.close()


def test_invalid_parameters():
    with pytest.raises(ValueError):
        RemoteCaller(max_attempts=0)
    with pytest.raises(ValueError):
        RemoteCaller(retry_delay=-1)


def test_timeout_applies_to_every_phase():
    caller = RemoteCaller(timeout=0.25)

    assert caller.timeout.connect == 0.25
    assert caller.timeout.read == 0.25
    assert caller.timeout.write == 0.25


@pytest.mark.asyncio
async def test_fixed_delay_between_attempts():
    """O intervalo entre tentativas é sempre o configurado, sem backoff."""
    # Arrange
    arrivals = []

    def handler(request):
        arrivals.append(time.monotonic())
        raise httpx.ConnectError("recusada", request=request)

    caller = RemoteCaller(
        node_name="test", max_attempts=3, retry_delay=0.1,
        transport=httpx.MockTransport(handler),
    )

    # Act
    with pytest.raises(RetriesExhausted):
        await caller.call("get", "server2:8002", "a")
    await caller.close()

    # Assert
    gaps = [later - earlier for earlier, later in zip(arrivals, arrivals[1:])]
    assert len(gaps) == 2
    for gap in gaps:
        assert 0.095 <= gap < 0.3, f"Intervalo fora do esperado: {gap:.3f}s"
    assert abs(gaps[1] - gaps[0]) < 0.08, "Intervalos devem ser iguais (sem backoff)"


@pytest.mark.asyncio
async def test_slow_peer_times_out_on_every_attempt():
    """Cada tentativa carrega o timeout configurado; timeouts são retentados até esgotar."""
    # Arrange
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("sem resposta no prazo", request=request)

    caller = RemoteCaller(
        node_name="test", timeout=0.25, max_attempts=3, retry_delay=0,
        transport=httpx.MockTransport(handler),
    )

    # Act
    with pytest.raises(RetriesExhausted) as exc_info:
        await caller.call("delete", "server2:8002", "a")
    await caller.close()

    # Assert
    assert len(calls) == 3
    assert "ReadTimeout" in exc_info.value.last_error
    for request in calls:
        assert request.extensions["timeout"] == {
            "connect": 0.25, "read": 0.25, "write": 0.25, "pool": 0.25,
        }
