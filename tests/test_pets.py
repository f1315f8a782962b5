import httpx
import pytest
import respx

from appointment_service.config import Settings
from appointment_service.services.errors import InvalidPetReferenceError
from appointment_service.services.pets import (
    DatabasePetRegistry,
    HttpPetRegistry,
    PetReferenceValidator,
    PetRegistry,
    PetRegistryError,
    build_pet_registry,
)

BASE = "http://pet-service.local"


@pytest.fixture
def http_registry():
    return HttpPetRegistry(f"{BASE}/", timeout=5)


async def test_http_registry_pet_found(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/pet-1").respond(200, json={"id": "pet-1", "name": "Rex"})

        assert await http_registry.pet_exists("pet-1") is True


async def test_http_registry_pet_missing(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/ghost").respond(404, json={"error": "Pet not found"})

        assert await http_registry.pet_exists("ghost") is False


async def test_http_registry_other_pets_route_is_not_a_pet(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/stats").respond(200, json={"total": 3, "bySpecies": {"dog": 3}})

        assert await http_registry.pet_exists("stats") is False


async def test_http_registry_requires_matching_id(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/pet-1").respond(200, json={"id": "pet-9", "name": "Rex"})

        assert await http_registry.pet_exists("pet-1") is False


@pytest.mark.parametrize("pet_id", [".", ".."])
async def test_http_registry_dot_segments_never_sent(http_registry, pet_id):
    with respx.mock(base_url=BASE) as m:
        assert await http_registry.pet_exists(pet_id) is False

    assert m.calls.call_count == 0


async def test_http_registry_server_error_is_not_missing(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/pet-1").respond(503)

        with pytest.raises(PetRegistryError, match="503"):
            await http_registry.pet_exists("pet-1")


async def test_http_registry_connection_error(http_registry):
    with respx.mock(base_url=BASE) as m:
        m.get("/pets/pet-1").mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(PetRegistryError, match="unavailable"):
            await http_registry.pet_exists("pet-1")


async def test_http_registry_lists_pet_ids(http_registry):
    pets = [{"id": "a"}, {"id": "b"}, {"name": "no id"}, {"id": "c"}]
    with respx.mock(base_url=BASE) as m:
        m.get("/pets").respond(200, json=pets)

        assert await http_registry.list_pet_ids(2) == ["a", "b"]


async def test_validator_rejects_unknown_pet(pet_registry):
    validator = PetReferenceValidator(pet_registry)

    await validator.validate("pet-1")
    with pytest.raises(InvalidPetReferenceError, match="Invalid petId: pet not found"):
        await validator.validate("ghost")


def test_build_pet_registry_prefers_http():
    registry = build_pet_registry(None, Settings(pet_registry_url=BASE, pet_registry_timeout=3))

    assert isinstance(registry, HttpPetRegistry)
    assert registry.base_url == BASE
    assert registry.timeout == 3


def test_build_pet_registry_without_url_needs_session():
    with pytest.raises(ValueError):
        build_pet_registry(None, Settings(pet_registry_url=None))


async def test_database_registry(db_session):
    registry = build_pet_registry(db_session, Settings(pet_registry_url=None, pets_table="pets"))

    assert isinstance(registry, DatabasePetRegistry)
    assert await registry.pet_exists("pet-1") is True
    assert await registry.pet_exists("ghost") is False
    assert sorted(await registry.list_pet_ids(5)) == ["pet-1", "pet-2"]


def test_registry_interface_is_abstract():
    with pytest.raises(TypeError):
        PetRegistry()
