"""
Attendance clock-in/clock-out through Employee Checkin documents.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from hr_mobile.config import Settings, get_settings
from hr_mobile.frappe import (
    AttendanceCheckin,
    AttendanceSession,
    AttendanceState,
    FrappeClient,
    FrappeError,
    LogType,
)
from hr_mobile.utils.dates import format_clock_time, format_erp_datetime, parse_erp_datetime

logger = logging.getLogger(__name__)

CHECKIN_FIELDS = ["name", "employee", "log_type", "time", "location"]


class AttendanceService:
    """Check-in queries and clock actions for an employee."""

    EMPLOYEE_CHECKIN = "Employee Checkin"

    def __init__(
        self,
        client: Optional[FrappeClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.client = client or FrappeClient()
        self.settings = settings or get_settings()

    async def list_checkins(self, employee: str, limit: int = 50) -> list[AttendanceCheckin]:
        """Latest check-ins for an employee, newest first ([] on failure)."""
        try:
            rows = await self.client.get_list(
                self.EMPLOYEE_CHECKIN,
                filters=[["employee", "=", employee]],
                fields=CHECKIN_FIELDS,
                order_by="time desc",
                limit=limit,
            )
        except FrappeError as e:
            logger.error(f"Error listing check-ins for {employee}: {e}")
            return []
        return [_to_checkin(r) for r in rows if _is_checkin(r)]

    async def fetch_checkins_between(
        self,
        start: datetime,
        end: datetime,
        employee: Optional[str] = None,
        limit: int = 1000,
    ) -> list[AttendanceCheckin]:
        """
        Check-ins in the half-open window [start, end), oldest first.

        Raises:
            FrappeError: If the query fails
        """
        filters: list[list[Any]] = [
            ["time", ">=", format_erp_datetime(start)],
            ["time", "<", format_erp_datetime(end)],
        ]
        if employee:
            filters.insert(0, ["employee", "=", employee])

        rows = await self.client.get_list(
            self.EMPLOYEE_CHECKIN,
            filters=filters,
            fields=CHECKIN_FIELDS,
            order_by="time asc",
            limit=limit,
        )
        return [_to_checkin(r) for r in rows if _is_checkin(r)]

    async def get_attendance_state(self, employee: str) -> AttendanceState:
        rows = await self.list_checkins(employee, limit=1)
        last = rows[0] if rows else None
        return AttendanceState(
            is_clocked_in=last is not None and last.log_type == LogType.IN,
            last_log=last,
        )

    async def _log(
        self,
        log_type: LogType,
        employee: str,
        time: Optional[datetime] = None,
        location: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> dict[str, Any]:
        body = {
            "employee": employee,
            "log_type": log_type.value,
            "time": format_erp_datetime(time or datetime.now()),
            "device_id": device_id or self.settings.erp_device_id or "MobileApp",
            "location": location or "",
        }
        try:
            doc = await self.client.insert(self.EMPLOYEE_CHECKIN, body)
        except FrappeError as e:
            action = "Clock In" if log_type == LogType.IN else "Clock Out"
            logger.error(f"{action} failed for {employee}: {e}")
            raise
        logger.info(f"Recorded {log_type.value} for {employee}")
        return doc or body

    async def clock_in(self, employee: str, **kwargs) -> dict[str, Any]:
        """
        Record an IN check-in.

        Keyword Args:
            time: Check-in time (defaults to now)
            location: Location stamp
            device_id: Device label (defaults to ERP_DEVICE_ID)

        Raises:
            FrappeError: If the check-in could not be recorded
        """
        return await self._log(LogType.IN, employee, **kwargs)

    async def clock_out(self, employee: str, **kwargs) -> dict[str, Any]:
        """Record an OUT check-in. Accepts the same options as clock_in."""
        return await self._log(LogType.OUT, employee, **kwargs)

    async def toggle_clock(self, employee: str, **kwargs) -> tuple[LogType, dict[str, Any]]:
        """
        Clock out when currently clocked in, otherwise clock in.

        Returns:
            (action, created check-in)
        """
        state = await self.get_attendance_state(employee)
        if state.is_clocked_in:
            return LogType.OUT, await self.clock_out(employee, **kwargs)
        return LogType.IN, await self.clock_in(employee, **kwargs)


def _is_checkin(row: dict[str, Any]) -> bool:
    return str(row.get("log_type") or "").upper() in (LogType.IN.value, LogType.OUT.value)


def _to_checkin(row: dict[str, Any]) -> AttendanceCheckin:
    return AttendanceCheckin.model_validate(
        {**row, "log_type": str(row["log_type"]).upper(), "time": str(row.get("time") or "")}
    )


def pair_sessions(rows: list[AttendanceCheckin]) -> list[AttendanceSession]:
    """
    Pair IN/OUT check-ins into sessions for the history list.

    Each IN is closed by the next later OUT. An IN followed by another
    IN, or left open at the end, becomes a session without a clock-out;
    an OUT with no open IN becomes a session without a clock-in.

    Returns:
        Sessions, newest first
    """
    timed = [(parse_erp_datetime(r.time), r) for r in rows]
    items = sorted(((dt, r) for dt, r in timed if dt is not None), key=lambda item: item[0])

    sessions: list[AttendanceSession] = []
    open_in: Optional[tuple[datetime, AttendanceCheckin]] = None

    def unmatched_in(dt: datetime, row: AttendanceCheckin) -> AttendanceSession:
        return AttendanceSession(
            id=f"{row.name}-open",
            date=dt.date().isoformat(),
            clock_in=format_clock_time(dt),
            location_in=row.location or "",
        )

    for dt, row in items:
        if row.log_type == LogType.IN:
            if open_in:
                sessions.append(unmatched_in(*open_in))
            open_in = (dt, row)
        elif open_in and dt > open_in[0]:
            in_dt, in_row = open_in
            sessions.append(
                AttendanceSession(
                    id=f"{in_row.name}-{row.name}",
                    date=dt.date().isoformat(),
                    clock_in=format_clock_time(in_dt),
                    clock_out=format_clock_time(dt),
                    location_in=in_row.location or "",
                    location_out=row.location or "",
                )
            )
            open_in = None
        else:
            sessions.append(
                AttendanceSession(
                    id=row.name,
                    date=dt.date().isoformat(),
                    clock_out=format_clock_time(dt),
                    location_out=row.location or "",
                )
            )

    if open_in:
        sessions.append(unmatched_in(*open_in))

    sessions.reverse()
    return sessions
