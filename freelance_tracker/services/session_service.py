"""Session service - business logic for project time tracking."""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from freelance_tracker.clock import Clock, SystemClock
from freelance_tracker.exceptions import ConflictError, NotFoundError, ValidationError
from freelance_tracker.models.project import Project
from freelance_tracker.models.time_entry import TimeEntry, TimeEntryUpdate, TimeEntryWithAmount
from freelance_tracker.services import billing
from freelance_tracker.services.documents import doc_to_entry, parse_object_id
from freelance_tracker.services.project_service import ProjectService

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with stored values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionService:
    """
    Service for starting, stopping and editing project timers.

    A user may run timers on several projects at once, but never two on the
    same project. The rule is enforced by the ``is_open`` partial unique index
    on ``time_entries``; the lookups done here beforehand only produce a
    friendlier error and do not replace it.
    """

    def __init__(self, db, clock: Optional[Clock] = None):
        """Initialize service with database connection and clock."""
        self.db = db
        self.time_entries = db["time_entries"]
        self.project_service = ProjectService(db)
        self.clock = clock or SystemClock()

    def _calculate_duration(self, start_time: datetime, end_time: datetime) -> int:
        """
        Calculate duration in whole minutes between start and end time.

        Args:
            start_time: Start time
            end_time: End time

        Returns:
            Duration rounded to the nearest minute, halves rounding up
        """
        delta = end_time - start_time
        return int(math.floor(delta.total_seconds() / 60 + 0.5))

    async def _find_open_entry(self, user_id: str, project_id: str) -> Optional[dict]:
        return await self.time_entries.find_one({
            "user_id": user_id,
            "project_id": project_id,
            "is_open": True,
        })

    async def _ensure_no_open_entry(self, user_id: str, project: Project) -> None:
        running = await self._find_open_entry(user_id, project.id)
        if running:
            logger.warning(
                "Timer already running on project %s for user %s (entry %s)",
                project.id,
                user_id,
                running["_id"],
            )
            raise ConflictError(project.id, project.name, str(running["_id"]))

    async def start_session(
        self,
        project_id: str,
        user_id: str,
    ) -> TimeEntry:
        """
        Start a new timer on a project.

        Args:
            project_id: Project ID
            user_id: User ID

        Returns:
            Created open time entry

        Raises:
            NotFoundError: If the project doesn't exist or isn't owned by the user
            ConflictError: If a timer is already running on this project
        """
        project = await self.project_service.get_project(user_id, project_id)
        await self._ensure_no_open_entry(user_id, project)

        now = self.clock.now()
        entry_doc = {
            "user_id": user_id,
            "project_id": project.id,
            "start_time": now,
            "end_time": None,
            "duration_minutes": None,
            "note": None,
            "is_open": True,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.time_entries.insert_one(entry_doc)
        except DuplicateKeyError:
            # Lost the race against a concurrent start on the same project.
            logger.warning("Concurrent start rejected on project %s for user %s", project.id, user_id)
            raise ConflictError(project.id, project.name)

        entry_doc["_id"] = result.inserted_id
        logger.info("Started time entry %s on project %s", result.inserted_id, project.id)

        return doc_to_entry(entry_doc)

    async def stop_session(
        self,
        entry_id: str,
        project_id: str,
        user_id: str,
        note: Optional[str] = None,
    ) -> TimeEntry:
        """
        Stop a running timer.

        Args:
            entry_id: Time entry ID
            project_id: Project ID the entry belongs to
            user_id: User ID
            note: Optional note, replacing any previous one

        Returns:
            Closed time entry with end_time and duration

        Raises:
            NotFoundError: If no matching running entry exists
            ValidationError: If the clock reads earlier than the entry's start
        """
        object_id = parse_object_id(entry_id, "Active time entry")

        running = await self.time_entries.find_one({
            "_id": object_id,
            "project_id": project_id,
            "user_id": user_id,
            "is_open": True,
        })

        if not running:
            raise NotFoundError("Active time entry")

        end_time = self.clock.now()
        if end_time < running["start_time"]:
            raise ValidationError("End time must not be before start time", field="end_time")

        duration = self._calculate_duration(running["start_time"], end_time)

        update_doc = {
            "end_time": end_time,
            "duration_minutes": duration,
            "note": note or None,
            "is_open": False,
            "updated_at": end_time,
        }

        updated_doc = await self.time_entries.find_one_and_update(
            {"_id": object_id, "is_open": True},
            {"$set": update_doc},
            return_document=ReturnDocument.AFTER,
        )

        if not updated_doc:
            # Stopped by a concurrent request between the read and the write.
            raise NotFoundError("Active time entry")

        logger.info("Stopped time entry %s after %d minutes", entry_id, duration)

        return doc_to_entry(updated_doc)

    async def resume_session(
        self,
        entry_id: str,
        project_id: str,
        user_id: str,
    ) -> TimeEntry:
        """
        Reopen a stopped entry so new time accumulates onto it.

        The start time is moved back by the entry's recorded duration, so the
        next stop yields previous duration plus the time since resuming.

        Args:
            entry_id: ID of the stopped entry to reopen
            project_id: Project ID the entry belongs to
            user_id: User ID

        Returns:
            The reopened time entry

        Raises:
            NotFoundError: If the project or stopped entry doesn't exist
            ConflictError: If a timer is already running on this project
        """
        project = await self.project_service.get_project(user_id, project_id)
        await self._ensure_no_open_entry(user_id, project)

        object_id = parse_object_id(entry_id, "Time entry")

        existing = await self.time_entries.find_one({
            "_id": object_id,
            "project_id": project.id,
            "user_id": user_id,
            "is_open": False,
        })

        if not existing:
            raise NotFoundError("Time entry", "Time entry not found or still running")

        previous_minutes = existing.get("duration_minutes") or 0
        now = self.clock.now()

        update_doc = {
            "start_time": now - timedelta(minutes=previous_minutes),
            "end_time": None,
            "duration_minutes": None,
            "is_open": True,
            "updated_at": now,
        }

        try:
            updated_doc = await self.time_entries.find_one_and_update(
                {"_id": object_id, "is_open": False},
                {"$set": update_doc},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning("Concurrent resume rejected on project %s for user %s", project.id, user_id)
            raise ConflictError(project.id, project.name)

        if not updated_doc:
            raise NotFoundError("Time entry", "Time entry not found or still running")

        logger.info(
            "Resumed time entry %s with %d previous minutes",
            entry_id,
            previous_minutes,
        )

        return doc_to_entry(updated_doc)

    async def delete_session(
        self,
        entry_id: str,
        project_id: str,
        user_id: str,
    ) -> None:
        """
        Delete a time entry, running or stopped.

        Raises:
            NotFoundError: If the entry doesn't exist or isn't owned by the user
        """
        object_id = parse_object_id(entry_id, "Time entry")

        # Hard delete; an open entry removed here frees the project for a new start.
        result = await self.time_entries.delete_one({
            "_id": object_id,
            "project_id": project_id,
            "user_id": user_id,
        })

        if result.deleted_count == 0:
            raise NotFoundError("Time entry")

        logger.info("Deleted time entry %s", entry_id)

    async def update_session(
        self,
        entry_id: str,
        project_id: str,
        user_id: str,
        entry_update: TimeEntryUpdate,
    ) -> TimeEntry:
        """
        Edit a time entry.

        An explicit ``duration_minutes`` wins over recomputation. Otherwise the
        duration is recomputed from start and end on every edit of a closed
        entry, including note-only edits. Clearing ``end_time`` reopens the
        entry and clears its duration.

        Args:
            entry_id: Time entry ID
            project_id: Project ID the entry belongs to
            user_id: User ID
            entry_update: Patch; only explicitly set fields are applied

        Returns:
            Updated time entry

        Raises:
            NotFoundError: If the entry doesn't exist or isn't owned by the user
            ValidationError: If the patched entry would be temporally invalid
            ConflictError: If reopening while another timer runs on the project
        """
        object_id = parse_object_id(entry_id, "Time entry")

        existing = await self.time_entries.find_one({
            "_id": object_id,
            "project_id": project_id,
            "user_id": user_id,
        })

        if not existing:
            raise NotFoundError("Time entry")

        fields = entry_update.model_dump(exclude_unset=True)

        if "start_time" in fields and fields["start_time"] is None:
            raise ValidationError("Start time cannot be cleared", field="start_time")

        start_time = (
            _as_utc(fields["start_time"]) if "start_time" in fields else existing["start_time"]
        )
        if "end_time" in fields:
            end_time = _as_utc(fields["end_time"]) if fields["end_time"] else None
        else:
            end_time = existing.get("end_time")

        if end_time is not None and end_time <= start_time:
            raise ValidationError("End time must be after start time", field="end_time")

        update_doc = {"updated_at": self.clock.now()}

        if "start_time" in fields:
            update_doc["start_time"] = start_time
        if "end_time" in fields:
            update_doc["end_time"] = end_time
        if "note" in fields:
            update_doc["note"] = fields["note"] or None

        explicit_duration = fields.get("duration_minutes")
        if explicit_duration is not None:
            if end_time is None:
                raise ValidationError(
                    "Duration can only be set on a stopped entry",
                    field="duration_minutes",
                )
            if explicit_duration < 0:
                raise ValidationError("Duration must not be negative", field="duration_minutes")
            update_doc["duration_minutes"] = explicit_duration
        elif end_time is None:
            update_doc["duration_minutes"] = None
        else:
            update_doc["duration_minutes"] = self._calculate_duration(start_time, end_time)

        reopening = end_time is None and not existing.get("is_open", False)
        update_doc["is_open"] = end_time is None

        project: Optional[Project] = None
        if reopening:
            project = await self.project_service.get_project(user_id, project_id)
            await self._ensure_no_open_entry(user_id, project)

        try:
            updated_doc = await self.time_entries.find_one_and_update(
                {"_id": object_id, "user_id": user_id},
                {"$set": update_doc},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError(project_id, project.name if project else None)

        if not updated_doc:
            raise NotFoundError("Time entry")

        logger.info(
            "Updated time entry %s (duration %s)",
            entry_id,
            updated_doc.get("duration_minutes"),
        )

        return doc_to_entry(updated_doc)

    async def get_entry(
        self,
        user_id: str,
        entry_id: str,
    ) -> TimeEntry:
        """
        Get a single time entry owned by the user.

        Raises:
            NotFoundError: If the entry doesn't exist or isn't owned by the user
        """
        object_id = parse_object_id(entry_id, "Time entry")

        doc = await self.time_entries.find_one({
            "_id": object_id,
            "user_id": user_id,
        })

        if not doc:
            raise NotFoundError("Time entry")

        return doc_to_entry(doc)

    async def get_active_sessions(
        self,
        user_id: str,
    ) -> list[TimeEntry]:
        """List every running timer of the user, most recently started first."""
        cursor = self.time_entries.find({
            "user_id": user_id,
            "is_open": True,
        }).sort("start_time", -1)
        docs = await cursor.to_list(length=None)
        return [doc_to_entry(doc) for doc in docs]

    async def list_entries(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[TimeEntry]:
        """
        List time entries for a user with optional filtering.

        Args:
            user_id: User ID
            project_id: Optional project filter
            start_date: Optional start date filter
            end_date: Optional end date filter

        Returns:
            List of time entries, most recent first
        """
        query = {
            "user_id": user_id,
        }

        if project_id:
            query["project_id"] = project_id

        if start_date or end_date:
            query["start_time"] = {}
            if start_date:
                query["start_time"]["$gte"] = start_date
            if end_date:
                query["start_time"]["$lte"] = end_date

        cursor = self.time_entries.find(query).sort("start_time", -1)
        entry_docs = await cursor.to_list(length=None)

        return [doc_to_entry(doc) for doc in entry_docs]

    async def list_project_entries(
        self,
        project_id: str,
        user_id: str,
    ) -> list[TimeEntryWithAmount]:
        """
        List a project's entries with their billable amount.

        The amount is only set on hourly projects.

        Raises:
            NotFoundError: If the project doesn't exist or isn't owned by the user
        """
        project = await self.project_service.get_project(user_id, project_id)
        entries = await self.list_entries(user_id, project_id=project.id)
        return [
            TimeEntryWithAmount(
                **entry.model_dump(),
                amount=billing.entry_amount(project, entry),
            )
            for entry in entries
        ]
