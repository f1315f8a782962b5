"""
Database Repository Layer

Implements repository pattern for database operations.
Provides abstraction over SQLAlchemy for cleaner business logic.

Repositories speak in plain dictionaries keyed by the canonical field names
(``pet_name``, ``date``, ``created_at``...). Translation to table columns
happens here and nowhere else.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


# Canonical field name -> column name
APPOINTMENT_COLUMNS: Dict[str, str] = {
    "id": "id",
    "owner": "owner",
    "phone": "phone",
    "pet_name": "pet_name",
    "pet_type": "pet_type",
    "service": "service",
    "date": "appointment_date",
    "time": "appointment_time",
    "vet": "vet",
    "pet_id": "pet_id",
    "vet_name": "vet_name",
    "reason": "reason",
    "scheduled_at": "scheduled_at",
    "status": "status",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

# Never written by an update
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})

_SELECT_COLUMNS = ", ".join(APPOINTMENT_COLUMNS.values())
_FIELDS_BY_COLUMN = {column: field for field, column in APPOINTMENT_COLUMNS.items()}


class DatabaseError(Exception):
    """Custom exception for database operations."""
    pass


class BaseRepository:
    """Base repository with common database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: AsyncSession instance for database operations
        """
        self.session = session

    async def execute_query(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Execute a parametrized SQL query safely.

        Args:
            query: SQL query string
            params: Dictionary of query parameters

        Returns:
            Query result

        Raises:
            DatabaseError: If query execution fails
        """
        try:
            result = await self.session.execute(
                text(query),
                params or {}
            )
            return result
        except SQLAlchemyError as e:
            logger.error(f"Query execution failed: {e}")
            raise DatabaseError(f"Database operation failed: {str(e)}") from e

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise DatabaseError(f"Database operation failed: {str(e)}") from e


def _row_to_record(row: Any) -> Dict[str, Any]:
    return {_FIELDS_BY_COLUMN[column]: value for column, value in row.items()}


def _columns_for(fields: Iterable[str]) -> List[str]:
    unknown = [field for field in fields if field not in APPOINTMENT_COLUMNS]
    if unknown:
        raise ValueError(f"Unknown appointment fields: {', '.join(sorted(unknown))}")
    return [APPOINTMENT_COLUMNS[field] for field in fields]


class AppointmentRepository(BaseRepository):
    """Repository for appointment-related database operations."""

    async def create_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a canonical appointment record and assign its id.

        Args:
            record: Normalized appointment fields (without ``id``)

        Returns:
            The stored record, including the generated ``id``

        Raises:
            DatabaseError: If the insert fails
        """
        values = {field: value for field, value in record.items() if field != "id"}
        values["id"] = uuid.uuid4().hex

        columns = _columns_for(values.keys())
        placeholders = ", ".join(f":{field}" for field in values.keys())
        query = f"""
            INSERT INTO appointments ({", ".join(columns)})
            VALUES ({placeholders})
            RETURNING {_SELECT_COLUMNS};
        """

        try:
            result = await self.execute_query(query, values)
            rows = result.mappings().fetchall()
            if not rows:
                raise DatabaseError("Failed to create appointment - no data returned")

            created = _row_to_record(rows[0])
            await self.commit()

            logger.info(f"Created appointment {created['id']}")
            return created

        except DatabaseError as e:
            await self.session.rollback()
            logger.error(f"Failed to create appointment: {e}")
            raise

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        """
        Get appointment details by ID.

        Args:
            appointment_id: Unique appointment identifier

        Returns:
            Appointment details or None if not found
        """
        query = f"""
            SELECT {_SELECT_COLUMNS}
            FROM appointments
            WHERE id = :appointment_id;
        """

        result = await self.execute_query(query, {"appointment_id": appointment_id})
        row = result.mappings().fetchone()

        return _row_to_record(row) if row else None

    async def list_appointments(
        self,
        status: Optional[str] = None,
        pet_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        List appointments, newest first.

        Args:
            status: Optional exact-match status filter
            pet_id: Optional exact-match pet filter

        Returns:
            List of appointment dictionaries ordered by ``created_at`` descending
        """
        query = f"""
            SELECT {_SELECT_COLUMNS}
            FROM appointments
            WHERE 1 = 1
        """

        params: Dict[str, Any] = {}

        if status:
            query += " AND status = :status"
            params["status"] = status

        if pet_id:
            query += " AND pet_id = :pet_id"
            params["pet_id"] = pet_id

        query += " ORDER BY created_at DESC;"

        result = await self.execute_query(query, params)
        return [_row_to_record(row) for row in result.mappings().fetchall()]

    async def count_appointments(self) -> int:
        result = await self.execute_query("SELECT COUNT(*) FROM appointments;")
        return int(result.scalar() or 0)

    async def update_appointment(
        self,
        appointment_id: str,
        fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Merge ``fields`` into a stored appointment in a single statement.

        Only the given fields are written, so concurrent updates touching
        different fields do not overwrite each other.

        Args:
            appointment_id: Appointment ID
            fields: Canonical fields to set (``id``/``created_at`` are skipped)

        Returns:
            The merged record, or None if no appointment has this id
        """
        update_fields = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}

        if not update_fields:
            logger.warning("No valid fields provided for update")
            return await self.get_appointment_by_id(appointment_id)

        columns = _columns_for(update_fields.keys())
        set_clause = ", ".join(
            f"{column} = :{field}" for field, column in zip(update_fields.keys(), columns)
        )
        query = f"""
            UPDATE appointments
            SET {set_clause}
            WHERE id = :appointment_id
            RETURNING {_SELECT_COLUMNS};
        """

        params = {**update_fields, "appointment_id": appointment_id}

        try:
            result = await self.execute_query(query, params)
            rows = result.mappings().fetchall()
            if not rows:
                return None

            updated = _row_to_record(rows[0])
            await self.commit()

            logger.info(f"Updated appointment {appointment_id}: {', '.join(update_fields)}")
            return updated

        except DatabaseError as e:
            await self.session.rollback()
            logger.error(f"Failed to update appointment {appointment_id}: {e}")
            raise

    async def delete_appointment(self, appointment_id: str) -> bool:
        """
        Delete an appointment.

        Returns:
            True if a row was removed, False if the id was unknown
        """
        query = """
            DELETE FROM appointments
            WHERE id = :appointment_id
            RETURNING id;
        """

        try:
            result = await self.execute_query(query, {"appointment_id": appointment_id})
            deleted = len(result.fetchall()) > 0
            await self.commit()

            if deleted:
                logger.info(f"Deleted appointment {appointment_id}")
            return deleted

        except DatabaseError as e:
            await self.session.rollback()
            logger.error(f"Failed to delete appointment {appointment_id}: {e}")
            raise


class PetRepository(BaseRepository):
    """Read-only access to the pet registry's table in the shared database."""

    def __init__(self, session: AsyncSession, table: str = "pets"):
        super().__init__(session)
        self.table = table

    async def pet_exists(self, pet_id: str) -> bool:
        result = await self.execute_query(
            f"SELECT 1 FROM {self.table} WHERE id = :pet_id;",
            {"pet_id": pet_id}
        )
        return result.fetchone() is not None

    async def list_pet_ids(self, limit: int) -> List[str]:
        result = await self.execute_query(
            f"SELECT id FROM {self.table} LIMIT :limit;",
            {"limit": limit}
        )
        return [str(row[0]) for row in result.fetchall()]
