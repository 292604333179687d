"""Project service - project lookups and billing figures backed by MongoDB."""
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from freelance_tracker.exceptions import NotFoundError
from freelance_tracker.models.payment import Payment
from freelance_tracker.models.project import Project, ProjectStatus
from freelance_tracker.models.stats import PeriodRate, ProjectStats
from freelance_tracker.models.time_entry import TimeEntry
from freelance_tracker.services import billing
from freelance_tracker.services.documents import (
    doc_to_entry,
    doc_to_payment,
    doc_to_project,
    parse_object_id,
)


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class ProjectService:
    """
    Service for reading projects, their time entries and their payments.

    Project and payment CRUD happens elsewhere; this service only reads them
    and hands the data to the billing calculator.
    """

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.projects = db["projects"]
        self.time_entries = db["time_entries"]
        self.payments = db["payments"]

    async def get_project(
        self,
        user_id: str,
        project_id: str,
    ) -> Project:
        """
        Get a project owned by the user.

        Args:
            user_id: User ID
            project_id: Project ID

        Returns:
            Project object

        Raises:
            NotFoundError: If the project doesn't exist or belongs to someone else
        """
        object_id = parse_object_id(project_id, "Project")

        doc = await self.projects.find_one({
            "_id": object_id,
            "user_id": user_id,
        })

        if not doc:
            raise NotFoundError("Project")

        return doc_to_project(doc)

    async def list_projects(
        self,
        user_id: str,
        status: Optional[ProjectStatus] = None,
    ) -> list[Project]:
        """List the user's projects, optionally filtered by status."""
        query = {"user_id": user_id}
        if status:
            query["status"] = status.value

        cursor = self.projects.find(query).sort("name", 1)
        docs = await cursor.to_list(length=None)
        return [doc_to_project(doc) for doc in docs]

    async def list_tracked_entries(self, project_id: str) -> list[TimeEntry]:
        """
        List the project's entries that have a recorded duration.

        Open entries are excluded; zero-minute entries are included and left
        for the calculator to filter.
        """
        cursor = self.time_entries.find({
            "project_id": project_id,
            "duration_minutes": {"$ne": None},
        }).sort("start_time", 1)
        docs = await cursor.to_list(length=None)
        return [doc_to_entry(doc) for doc in docs]

    async def list_payments(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Payment]:
        """
        List payments for a user with optional filtering.

        Args:
            user_id: User ID
            project_id: Optional project filter
            start_date: Optional inclusive lower bound on payment date
            end_date: Optional inclusive upper bound on payment date

        Returns:
            List of payments, oldest first
        """
        query = {"user_id": user_id}

        if project_id:
            query["project_id"] = project_id

        if start_date or end_date:
            query["payment_date"] = {}
            if start_date:
                query["payment_date"]["$gte"] = _start_of_day(start_date)
            if end_date:
                query["payment_date"]["$lt"] = _start_of_day(end_date + timedelta(days=1))

        cursor = self.payments.find(query).sort("payment_date", 1)
        docs = await cursor.to_list(length=None)
        return [doc_to_payment(doc) for doc in docs]

    async def get_project_stats(
        self,
        user_id: str,
        project_id: str,
    ) -> ProjectStats:
        """
        Compute hours, income and effective hourly rate for a project.

        Raises:
            NotFoundError: If the project doesn't exist or belongs to someone else
        """
        project = await self.get_project(user_id, project_id)
        entries = await self.list_tracked_entries(project.id)
        payments = await self.list_payments(user_id, project_id=project.id)
        return billing.compute_project_stats(project, entries, payments)

    async def get_billable_amount(
        self,
        user_id: str,
        project_id: str,
    ) -> Decimal:
        """Amount the project should have earned according to its billing mode."""
        project = await self.get_project(user_id, project_id)
        entries = await self.list_tracked_entries(project.id)
        return billing.compute_billable_amount(project, entries)

    async def get_period_rates(
        self,
        user_id: str,
        project_id: str,
    ) -> list[PeriodRate]:
        """Per-period effective rates; empty unless the project is recurring."""
        project = await self.get_project(user_id, project_id)
        entries = await self.list_tracked_entries(project.id)
        return billing.compute_period_rates(project, entries)
