"""
Testes do SpecialistRegistry.

Testa:
  - descoberta em paralelo preservando a ordem configurada
  - especialista offline/invalido omitido sem abortar
  - find por substring do nome ou id exato de skill
  - find_for_intent com termos em ordem de preferencia
  - wait_ready compartilhado entre turnos concorrentes
"""

import asyncio

import httpx
import pytest

from projects.assistant.orchestrator.registry import SpecialistRegistry


@pytest.fixture
def three_specialists(specialist_server, make_fake_specialist):
    fakes = {
        "weather.test": make_fake_specialist("Weather Agent", "weather_lookup"),
        "calc.test": make_fake_specialist("Calculator Agent", "calculator"),
        "query.test": make_fake_specialist("Structured Query Agent", "graphql"),
    }
    return specialist_server(fakes)


@pytest.mark.asyncio
async def test_discover_preserves_configured_order(three_specialists):
    registry = SpecialistRegistry(
        ["http://calc.test", "http://weather.test", "http://query.test"],
        three_specialists,
    )

    specialists = await registry.discover()

    assert [s.name for s in specialists] == ["Calculator Agent", "Weather Agent", "Structured Query Agent"]
    assert specialists[0].address == "http://calc.test"
    assert specialists[0].default_skill == "calculator"


@pytest.mark.asyncio
async def test_discover_skips_failures(specialist_server, make_fake_specialist):
    broken = make_fake_specialist("Broken Agent", "x")
    broken.card_status = 500
    http = specialist_server({
        "calc.test": make_fake_specialist("Calculator Agent", "calculator"),
        "broken.test": broken,
    })
    registry = SpecialistRegistry(
        ["http://offline.test", "http://broken.test", "http://calc.test"],
        http,
    )

    specialists = await registry.discover()

    assert [s.name for s in specialists] == ["Calculator Agent"]


@pytest.mark.asyncio
async def test_discover_with_no_specialists(specialist_server):
    registry = SpecialistRegistry(["http://offline.test"], specialist_server({}))

    await registry.wait_ready()

    assert registry.specialists == []
    assert registry.ready
    assert registry.find("calculator") is None


@pytest.mark.asyncio
async def test_find_by_name_substring_or_skill_id(three_specialists):
    registry = SpecialistRegistry(
        ["http://weather.test", "http://calc.test", "http://query.test"],
        three_specialists,
    )
    await registry.wait_ready()

    assert registry.find("WEATHER").name == "Weather Agent"
    assert registry.find("graphql").name == "Structured Query Agent"
    assert registry.find("calc").name == "Calculator Agent"
    assert registry.find("GRAPHQL") is None
    assert registry.find("") is None


@pytest.mark.asyncio
async def test_find_for_intent(three_specialists):
    registry = SpecialistRegistry(
        ["http://weather.test", "http://calc.test", "http://query.test"],
        three_specialists,
    )
    await registry.wait_ready()

    assert registry.find_for_intent("calculator").name == "Calculator Agent"
    assert registry.find_for_intent("weather").name == "Weather Agent"
    assert registry.find_for_intent("structured-query").name == "Structured Query Agent"
    assert registry.find_for_intent("structured-query").is_structured
    assert registry.find_for_intent("general") is None


@pytest.mark.asyncio
async def test_first_match_in_configured_order_wins(specialist_server, make_fake_specialist):
    http = specialist_server({
        "a.test": make_fake_specialist("Calculator Agent A", "calculator"),
        "b.test": make_fake_specialist("Calculator Agent B", "calculator"),
    })
    registry = SpecialistRegistry(["http://b.test", "http://a.test"], http)
    await registry.wait_ready()

    assert registry.find("calculator").name == "Calculator Agent B"
    assert registry.get_by_name("Calculator Agent A").address == "http://a.test"
    assert registry.get_by_name("Desconhecido") is None


@pytest.mark.asyncio
async def test_wait_ready_runs_discovery_once(make_card):
    calls = []

    async def handler(request):
        calls.append(request.url.host)
        await asyncio.sleep(0.01)
        return httpx.Response(200, json=make_card("Calculator Agent", "calculator"))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    registry = SpecialistRegistry(["http://calc.test"], http)

    await asyncio.gather(*(registry.wait_ready() for _ in range(5)))

    assert calls == ["calc.test"]
    assert registry.start() is registry.start()
    assert len(registry.specialists) == 1
