"""
Reporting Module Service (``backoffice_modules.reporting.service``).

Read-only reports over recorded sales.

Invariants
----------
- The date range is inclusive on both ends: the end bound is the last
  microsecond of ``end_date``.
- ``total`` is the sum of the listed sales' totals, zero for an empty range.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_kernel.db.engine import read_only
from backoffice_kernel.db.types import round_money, to_date
from backoffice_kernel.exceptions import InvalidDateError
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.sale import Sale
from backoffice_modules.reporting.models import SalesReport, SaleView

logger = get_logger("modules.reporting.service")


class SalesReportService:
    """Sales reports.  Never writes; ends any read transaction it opens."""

    def __init__(self, session: Session):
        self._session = session

    def sales_by_date_range(
        self,
        start_date: date | str,
        end_date: date | str,
    ) -> SalesReport:
        """
        Every sale recorded from the start of ``start_date`` to the end of
        ``end_date``, oldest first.

        Raises:
            InvalidDateError: A date is malformed, or end precedes start.
        """
        first = to_date(start_date, "start_date")
        last = to_date(end_date, "end_date")
        if last < first:
            raise InvalidDateError(
                f"{first.isoformat()}..{last.isoformat()}",
                field="date_range",
                reason="end before start",
            )

        start = datetime.combine(first, time.min, tzinfo=timezone.utc)
        end = datetime.combine(last, time.max, tzinfo=timezone.utc)
        in_range = Sale.sold_at.between(start, end)

        with read_only(self._session, "sales_by_date_range"):
            sales = self._session.execute(
                select(Sale)
                .where(in_range)
                .order_by(Sale.sold_at.asc(), Sale.number.asc())
            ).unique().scalars().all()
            views = tuple(SaleView.from_model(s) for s in sales)

        report = SalesReport(
            sales=views,
            total=round_money(sum((v.total for v in views), Decimal("0"))),
            count=len(views),
            start=start,
            end=end,
        )
        logger.info(
            "sales_report_generated",
            extra={
                "start_date": report.start_date,
                "end_date": report.end_date,
                "count": report.count,
                "total": str(report.total),
            },
        )
        return report
