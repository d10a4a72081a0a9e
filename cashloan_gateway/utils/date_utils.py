"""Date manipulation utilities"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from cashloan_gateway.domain.models import Frequency

_PERIOD_DAYS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


def add_periods(start: date, frequency: Frequency, periods: int) -> date:
    """Advance a date by whole repayment periods (month ends clamp, e.g. Jan 31 + 1 month = Feb 28)"""
    if frequency == Frequency.MONTHLY:
        return start + relativedelta(months=periods)
    return start + timedelta(days=periods * _PERIOD_DAYS[frequency])
