"""
Pet registry access.

The pet registry is owned by the pet service. This module only answers
"does a pet with this id exist?", either by reading the registry's table in
the shared database or by asking the pet service over HTTP.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import quote

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_service.config import Settings
from appointment_service.db.repository import PetRepository
from appointment_service.services.errors import InvalidPetReferenceError

logger = logging.getLogger(__name__)

INVALID_PET_MESSAGE = "Invalid petId: pet not found"


class PetRegistryError(Exception):
    """The pet registry could not be consulted."""


class PetRegistry(ABC):
    """Lookup interface consumed by the appointment service."""

    @abstractmethod
    async def pet_exists(self, pet_id: str) -> bool:
        pass

    @abstractmethod
    async def list_pet_ids(self, limit: int) -> List[str]:
        """Return up to ``limit`` pet ids (used when seeding sample data)."""
        pass


class DatabasePetRegistry(PetRegistry):
    """Reads the pet registry's table in the shared database."""

    def __init__(self, session: AsyncSession, table: str = "pets"):
        self.repo = PetRepository(session, table=table)

    async def pet_exists(self, pet_id: str) -> bool:
        return await self.repo.pet_exists(pet_id)

    async def list_pet_ids(self, limit: int) -> List[str]:
        return await self.repo.list_pet_ids(limit)


class HttpPetRegistry(PetRegistry):
    """
    Asks the pet service, ``GET /pets/{id}``.

    A pet exists only when the answer is 200 and its body carries the same
    ``id``; other routes under ``/pets`` (e.g. ``/pets/stats``) also answer 200.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _get(self, path: str) -> httpx.Response:
        headers = {"Accept": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.get(f"{self.base_url}{path}", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Pet registry request {path} failed: {e}")
            raise PetRegistryError(f"Pet registry unavailable: {e}") from e

    async def pet_exists(self, pet_id: str) -> bool:
        # Dot segments are collapsed by URL normalisation
        if pet_id in (".", ".."):
            return False

        resp = await self._get(f"/pets/{quote(pet_id, safe='')}")
        if resp.status_code == 404:
            return False
        if resp.status_code != 200:
            logger.error(f"Pet registry answered {resp.status_code} for pet {pet_id}")
            raise PetRegistryError(f"Pet registry returned HTTP {resp.status_code}")

        try:
            pet = resp.json()
        except ValueError:
            logger.warning(f"Pet registry sent a non-JSON body for pet {pet_id}")
            return False
        return isinstance(pet, dict) and pet.get("id") is not None and str(pet["id"]) == pet_id

    async def list_pet_ids(self, limit: int) -> List[str]:
        resp = await self._get("/pets")
        if not resp.is_success:
            raise PetRegistryError(f"Pet registry returned HTTP {resp.status_code}")
        return [str(pet["id"]) for pet in resp.json() if pet.get("id")][:limit]


def build_pet_registry(session: Optional[AsyncSession], settings: Settings) -> PetRegistry:
    """Choose the HTTP registry when ``pet_registry_url`` is set, else the shared table."""
    if settings.pet_registry_url:
        return HttpPetRegistry(settings.pet_registry_url, timeout=settings.pet_registry_timeout)
    if session is None:
        raise ValueError("A database session is required when PET_REGISTRY_URL is not set")
    return DatabasePetRegistry(session, table=settings.pets_table)


class PetReferenceValidator:
    """Guards writes that carry a ``petId``."""

    def __init__(self, registry: PetRegistry):
        self.registry = registry

    async def validate(self, pet_id: str) -> None:
        """
        Ensure ``pet_id`` names an existing pet.

        Lookup failures propagate unchanged; they are never read as "missing".

        Raises:
            InvalidPetReferenceError: If the registry has no such pet
        """
        if not await self.registry.pet_exists(pet_id):
            logger.info(f"Rejected reference to unknown pet {pet_id}")
            raise InvalidPetReferenceError(INVALID_PET_MESSAGE)
