"""
Testes de KeyedLocks.

Testa:
  - turnos da mesma chave sao serializados
  - chaves diferentes nao disputam o lock
  - lock removido quando ninguem referencia a chave
"""

import asyncio

import pytest

from projects.assistant.orchestrator.keyed import KeyedLocks


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLocks()
    order = []

    async def turn(name: str):
        async with locks.hold("t1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(turn("a"), turn("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_different_keys_run_in_parallel():
    locks = KeyedLocks()
    inside = asyncio.Event()
    release = asyncio.Event()

    async def holder():
        async with locks.hold("t1"):
            inside.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await inside.wait()

    async with locks.hold("t2"):
        assert locks.is_locked("t1")
        assert locks.is_locked("t2")

    release.set()
    await task


@pytest.mark.asyncio
async def test_lock_cleanup_after_release():
    locks = KeyedLocks()

    async with locks.hold("t1"):
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.is_locked("t1")


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLocks()

    with pytest.raises(ValueError):
        async with locks.hold("t1"):
            raise ValueError("falha no turno")

    assert len(locks) == 0
