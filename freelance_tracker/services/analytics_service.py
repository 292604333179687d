"""Analytics service - income and hours reports across a user's projects."""
from datetime import date, datetime, time, timezone
from typing import Optional

from freelance_tracker.clock import Clock, SystemClock
from freelance_tracker.config import settings
from freelance_tracker.models.project import ProjectStatus
from freelance_tracker.models.stats import (
    DashboardStats,
    PeriodEarnings,
    PeriodTime,
    ProjectAnalytics,
    ProjectEarnings,
    ProjectTime,
    TopProject,
)
from freelance_tracker.models.time_entry import TimeEntry
from freelance_tracker.services import analytics, billing
from freelance_tracker.services.documents import doc_to_entry
from freelance_tracker.services.project_service import ProjectService

TOP_PROJECTS_LIMIT = 5
PROJECT_HISTORY_MONTHS = 6


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class AnalyticsService:
    """Service for dashboard and report figures."""

    def __init__(self, db, clock: Optional[Clock] = None):
        """Initialize service with database connection and clock."""
        self.db = db
        self.time_entries = db["time_entries"]
        self.projects = db["projects"]
        self.project_service = ProjectService(db)
        self.clock = clock or SystemClock()
        self.currency = settings.default_currency

    async def _list_tracked_entries(
        self,
        user_id: str,
        since: Optional[date] = None,
        project_id: Optional[str] = None,
    ) -> list[TimeEntry]:
        query = {
            "user_id": user_id,
            "duration_minutes": {"$ne": None},
        }
        if since:
            query["start_time"] = {"$gte": _start_of_day(since)}
        if project_id:
            query["project_id"] = project_id

        cursor = self.time_entries.find(query).sort("start_time", 1)
        docs = await cursor.to_list(length=None)
        return [doc_to_entry(doc) for doc in docs]

    async def _project_names(self, user_id: str) -> dict[str, str]:
        projects = await self.project_service.list_projects(user_id)
        return {project.id: project.name for project in projects}

    def _window_start(self, months: Optional[int]) -> Optional[date]:
        if months is None:
            return None
        return analytics.month_start(self.clock.now(), months)

    async def get_earnings(
        self,
        user_id: str,
        group_by: analytics.GroupBy = "month",
        months: int = settings.analytics_months,
    ) -> list[PeriodEarnings]:
        """Payments grouped by day, week or month over the last ``months`` months."""
        payments = await self.project_service.list_payments(
            user_id,
            start_date=self._window_start(months),
        )
        return analytics.earnings_by_period(payments, group_by, self.currency)

    async def get_earnings_by_project(
        self,
        user_id: str,
        months: Optional[int] = None,
    ) -> list[ProjectEarnings]:
        """Payments per project; all time unless ``months`` is given."""
        payments = await self.project_service.list_payments(
            user_id,
            start_date=self._window_start(months),
        )
        names = await self._project_names(user_id)
        return analytics.earnings_by_project(payments, names, self.currency)

    async def get_time_by_period(
        self,
        user_id: str,
        group_by: analytics.GroupBy = "month",
        project_id: Optional[str] = None,
        months: int = settings.analytics_months,
    ) -> list[PeriodTime]:
        """Tracked time grouped by day, week or month."""
        entries = await self._list_tracked_entries(
            user_id,
            since=self._window_start(months),
            project_id=project_id,
        )
        return analytics.time_by_period(entries, group_by)

    async def get_time_by_project(
        self,
        user_id: str,
        months: int = settings.analytics_months,
    ) -> list[ProjectTime]:
        """Tracked time per project."""
        entries = await self._list_tracked_entries(user_id, since=self._window_start(months))
        names = await self._project_names(user_id)
        return analytics.time_by_project(entries, names)

    async def get_dashboard(self, user_id: str) -> DashboardStats:
        """
        Headline figures for the dashboard.

        Returns:
            Current month income and hours, the number of active projects, the
            monthly income trend and the top projects by income this year
        """
        now = self.clock.now()
        start_of_month = analytics.month_start(now)
        start_of_year = date(now.year, 1, 1)

        month_payments = await self.project_service.list_payments(user_id, start_date=start_of_month)
        month_entries = await self._list_tracked_entries(user_id, since=start_of_month)

        active_projects_count = await self.projects.count_documents({
            "user_id": user_id,
            "status": ProjectStatus.ACTIVE.value,
        })

        trend_payments = await self.project_service.list_payments(
            user_id,
            start_date=analytics.month_start(now, settings.analytics_months - 1),
        )

        year_payments = await self.project_service.list_payments(user_id, start_date=start_of_year)
        ranked = analytics.earnings_by_project(year_payments, {}, self.currency)[:TOP_PROJECTS_LIMIT]
        projects = {
            project.id: project
            for project in await self.project_service.list_projects(user_id)
        }

        top_projects = []
        for ranking in ranked:
            project = projects.get(ranking.project_id)
            if project is None:
                continue
            entries = await self.project_service.list_tracked_entries(project.id)
            project_payments = [p for p in year_payments if p.project_id == project.id]
            stats = billing.compute_project_stats(project, entries, project_payments)
            top_projects.append(TopProject(
                project_id=project.id,
                project_name=project.name,
                **stats.model_dump(),
            ))

        return DashboardStats(
            total_income_month=sum((p.amount for p in month_payments), billing.ZERO),
            total_hours_month=billing.minutes_to_hours(
                sum(entry.duration_minutes for entry in month_entries)
            ),
            active_projects_count=active_projects_count,
            income_by_month=analytics.income_by_month(
                trend_payments,
                now,
                self.currency,
                months=settings.analytics_months,
            ),
            top_projects=top_projects,
        )

    async def get_project_analytics(
        self,
        user_id: str,
        project_id: str,
    ) -> ProjectAnalytics:
        """
        Project statistics plus monthly hours and income for recent months.

        Raises:
            NotFoundError: If the project doesn't exist or belongs to someone else
        """
        project = await self.project_service.get_project(user_id, project_id)
        entries = await self.project_service.list_tracked_entries(project.id)
        payments = await self.project_service.list_payments(user_id, project_id=project.id)

        stats = billing.compute_project_stats(project, entries, payments)

        since = analytics.month_start(self.clock.now(), PROJECT_HISTORY_MONTHS - 1)
        recent_entries = [
            entry for entry in entries
            if billing.is_completed(entry) and billing.calendar_date(entry.start_time) >= since
        ]
        recent_payments = [p for p in payments if p.payment_date >= since]

        return ProjectAnalytics(
            **stats.model_dump(),
            hours_by_period=analytics.time_by_period(recent_entries, "month"),
            income_by_period=analytics.earnings_by_period(recent_payments, "month", self.currency),
        )
