"""Date and time library for the Vybe language.

Dates are naive `datetime` values; `TimeSpan` values wrap a `timedelta`.
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Any

from vybe.errors import raise_exception
from vybe.objects import EnumVal
from vybe.types import Long, TimeSpanVal, to_date, to_double, to_integer, to_string
from vybe.std.conversion import DAY_NAMES, MONTH_NAMES, format_date_pattern
from vybe.std.support import arg, int_arg, text_arg


TICKS_PER_SECOND = 10_000_000
_EPOCH = datetime(1, 1, 1)

# `DateInterval` members map onto the classic interval strings.
INTERVALS = {
    'Year': 'yyyy', 'Quarter': 'q', 'Month': 'm', 'DayOfYear': 'y', 'Day': 'd',
    'Weekday': 'w', 'WeekOfYear': 'ww', 'Hour': 'h', 'Minute': 'n', 'Second': 's',
}


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month."""
    total = value.year * 12 + (value.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    if year < 1 or year > 9999:
        raise_exception('ArgumentOutOfRangeException', 'The added or subtracted value results in an un-representable DateTime.')
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _shift(value: datetime, delta: timedelta) -> datetime:
    try:
        return value + delta
    except OverflowError:
        raise_exception('ArgumentOutOfRangeException', 'The added or subtracted value results in an un-representable DateTime.')


def _interval(value: Any) -> str:
    if isinstance(value, EnumVal):
        return INTERVALS.get(value.member_name, 'd')
    return to_string(value).lower()


def date_add(interval: str, number: float, value: datetime) -> datetime:
    if interval == 'yyyy':
        return add_months(value, int(number) * 12)
    if interval == 'q':
        return add_months(value, int(number) * 3)
    if interval == 'm':
        return add_months(value, int(number))
    if interval in ('d', 'y', 'w'):
        return _shift(value, timedelta(days=int(number)))
    if interval == 'ww':
        return _shift(value, timedelta(weeks=int(number)))
    if interval == 'h':
        return _shift(value, timedelta(hours=number))
    if interval == 'n':
        return _shift(value, timedelta(minutes=number))
    if interval == 's':
        return _shift(value, timedelta(seconds=number))
    raise_exception('ArgumentException', f"Argument 'Interval' is not a valid value: '{interval}'.")


def date_diff(interval: str, first: datetime, second: datetime) -> Long:
    if interval == 'yyyy':
        return Long(second.year - first.year)
    if interval == 'q':
        return Long((second.year - first.year) * 4 + (second.month - 1) // 3 - (first.month - 1) // 3)
    if interval == 'm':
        return Long((second.year - first.year) * 12 + second.month - first.month)
    seconds = (second - first).total_seconds()
    if interval in ('d', 'y'):
        return Long(int(seconds / 86400))
    if interval in ('w', 'ww'):
        return Long(int(seconds / (86400 * 7)))
    if interval == 'h':
        return Long(int(seconds / 3600))
    if interval == 'n':
        return Long(int(seconds / 60))
    if interval == 's':
        return Long(int(seconds))
    raise_exception('ArgumentException', f"Argument 'Interval' is not a valid value: '{interval}'.")


def weekday(value: datetime, first_day: int = 1) -> int:
    """1-based weekday counted from `first_day` (1 = Sunday)."""
    sunday_based = (value.weekday() + 1) % 7
    return (sunday_based - (first_day - 1)) % 7 + 1


def date_part(interval: str, value: datetime) -> int:
    if interval == 'yyyy':
        return value.year
    if interval == 'q':
        return (value.month - 1) // 3 + 1
    if interval == 'm':
        return value.month
    if interval == 'y':
        return value.timetuple().tm_yday
    if interval == 'd':
        return value.day
    if interval == 'w':
        return weekday(value)
    if interval == 'ww':
        jan1 = datetime(value.year, 1, 1)
        return (value.timetuple().tm_yday + weekday(jan1) - 2) // 7 + 1
    if interval == 'h':
        return value.hour
    if interval == 'n':
        return value.minute
    if interval == 's':
        return value.second
    raise_exception('ArgumentException', f"Argument 'Interval' is not a valid value: '{interval}'.")


def date_serial(year: int, month: int, day: int) -> datetime:
    """`DateSerial`: out-of-range months and days roll over."""
    if 0 <= year < 30:
        year += 2000
    elif 30 <= year < 100:
        year += 1900
    base = add_months(datetime(year, 1, 1), month - 1)
    return _shift(base, timedelta(days=day - 1))


def day_of_week(value: datetime) -> EnumVal:
    index = (value.weekday() + 1) % 7
    return EnumVal(index, 'DayOfWeek', DAY_NAMES[index])


def make_timespan(args) -> TimeSpanVal:
    """`New TimeSpan(ticks)`, `(h, m, s)`, `(d, h, m, s)` or `(d, h, m, s, ms)`."""
    values = [to_double(a) for a in args]
    if len(values) == 1:
        return TimeSpanVal(timedelta(microseconds=values[0] / 10))
    if len(values) == 3:
        return TimeSpanVal(timedelta(hours=values[0], minutes=values[1], seconds=values[2]))
    if len(values) in (4, 5):
        ms = values[4] if len(values) == 5 else 0
        return TimeSpanVal(timedelta(days=values[0], hours=values[1], minutes=values[2], seconds=values[3],
                                     milliseconds=ms))
    if not values:
        return TimeSpanVal(timedelta(0))
    raise_exception('ArgumentException', 'TimeSpan expects 1, 3, 4 or 5 arguments.')


def _parts(span: TimeSpanVal):
    """Signed (days, hours, minutes, seconds, milliseconds) components."""
    total = span.delta
    sign = -1 if total < timedelta(0) else 1
    total = abs(total)
    hours, rest = divmod(total.seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return (sign * total.days, sign * hours, sign * minutes, sign * seconds,
            sign * (total.microseconds // 1000))


def populate_datetime(registry):
    # ------------------------------------------------------------------
    # VB functions
    # ------------------------------------------------------------------
    def now(interp, args):
        return datetime.now().replace(microsecond=0)

    def today(interp, args):
        return datetime.combine(datetime.now().date(), datetime.min.time())

    def utc_now(interp, args):
        return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None)

    def part(getter):
        def compute(interp, args):
            return getter(to_date(args[0]))
        return compute

    def weekday_fn(interp, args):
        return weekday(to_date(args[0]), int_arg(args, 1, 1))

    def month_name(interp, args):
        month = to_integer(args[0])
        if month < 1 or month > 12:
            raise_exception('ArgumentException', "Argument 'Month' is not a valid value.")
        name = MONTH_NAMES[month - 1]
        return name[:3] if arg(args, 1, False) else name

    def weekday_name(interp, args):
        day = to_integer(args[0])
        if day < 1 or day > 7:
            raise_exception('ArgumentException', "Argument 'Weekday' is not a valid value.")
        first = int_arg(args, 2, 1)
        name = DAY_NAMES[(day - 1 + first - 1) % 7]
        return name[:3] if arg(args, 1, False) else name

    def date_add_fn(interp, args):
        return date_add(_interval(args[0]), to_double(args[1]), to_date(args[2]))

    def date_diff_fn(interp, args):
        return date_diff(_interval(args[0]), to_date(args[1]), to_date(args[2]))

    def date_part_fn(interp, args):
        return date_part(_interval(args[0]), to_date(args[1]))

    def date_serial_fn(interp, args):
        return date_serial(to_integer(args[0]), to_integer(args[1]), to_integer(args[2]))

    def time_serial(interp, args):
        seconds = to_integer(args[0]) * 3600 + to_integer(args[1]) * 60 + to_integer(args[2])
        return _EPOCH + timedelta(seconds=seconds % 86400)

    def date_value(interp, args):
        value = to_date(args[0])
        return datetime(value.year, value.month, value.day)

    def time_value(interp, args):
        value = to_date(args[0])
        return datetime.combine(_EPOCH.date(), value.time())

    def timer(interp, args):
        moment = datetime.now()
        midnight = datetime.combine(moment.date(), datetime.min.time())
        return (moment - midnight).total_seconds()

    registry.function(('Now', 'DateTime.Now', 'Date.Now', 'DateAndTime.Now'), now, 0, 0, category='datetime')
    registry.function(('Today', 'DateTime.Today', 'Date.Today', 'DateAndTime.Today'), today, 0, 0,
                      category='datetime')
    registry.function(('DateTime.UtcNow', 'Date.UtcNow'), utc_now, 0, 0, category='datetime')
    registry.function('Year', part(lambda d: d.year), 1, 1, category='datetime')
    registry.function('Month', part(lambda d: d.month), 1, 1, category='datetime')
    registry.function('Day', part(lambda d: d.day), 1, 1, category='datetime')
    registry.function('Hour', part(lambda d: d.hour), 1, 1, category='datetime')
    registry.function('Minute', part(lambda d: d.minute), 1, 1, category='datetime')
    registry.function('Second', part(lambda d: d.second), 1, 1, category='datetime')
    registry.function('Weekday', weekday_fn, 1, 2, category='datetime')
    registry.function('MonthName', month_name, 1, 2, category='datetime')
    registry.function('WeekdayName', weekday_name, 1, 3, category='datetime')
    registry.function(('DateAdd', 'DateAndTime.DateAdd'), date_add_fn, 3, 3, category='datetime')
    registry.function(('DateDiff', 'DateAndTime.DateDiff'), date_diff_fn, 3, 5, category='datetime')
    registry.function(('DatePart', 'DateAndTime.DatePart'), date_part_fn, 2, 4, category='datetime')
    registry.function(('DateSerial', 'DateAndTime.DateSerial'), date_serial_fn, 3, 3, category='datetime')
    registry.function(('TimeSerial', 'DateAndTime.TimeSerial'), time_serial, 3, 3, category='datetime')
    registry.function(('DateValue', 'DateAndTime.DateValue'), date_value, 1, 1, category='datetime')
    registry.function(('TimeValue', 'DateAndTime.TimeValue'), time_value, 1, 1, category='datetime')
    registry.function(('Timer', 'DateAndTime.Timer'), timer, 0, 0, category='datetime')
    for index, name in enumerate(INTERVALS):
        registry.constant(f"DateInterval.{name}", EnumVal(index, 'DateInterval', name))
    for index, name in enumerate(DAY_NAMES):
        registry.constant(f"DayOfWeek.{name}", EnumVal(index, 'DayOfWeek', name))
        registry.constant(f"vb{name}", index + 1)

    # ------------------------------------------------------------------
    # DateTime statics and constructors
    # ------------------------------------------------------------------
    def days_in_month(interp, args):
        return calendar.monthrange(to_integer(args[0]), to_integer(args[1]))[1]

    def is_leap_year(interp, args):
        return calendar.isleap(to_integer(args[0]))

    def date_compare(interp, args):
        a, b = to_date(args[0]), to_date(args[1])
        return (a > b) - (a < b)

    def new_date(interp, type_spec, args):
        if not args:
            return _EPOCH
        if len(args) == 1:
            ticks = to_integer(args[0], 'Long', 0, 2 ** 63 - 1)
            return _EPOCH + timedelta(microseconds=ticks // 10)
        values = [to_integer(a) for a in args] + [0] * (7 - len(args))
        year, month, day, hour, minute, second, ms = values[:7]
        try:
            return datetime(year, month, day, hour, minute, second, ms * 1000)
        except ValueError:
            raise_exception('ArgumentOutOfRangeException', 'Year, Month, and Day parameters describe an un-representable DateTime.')

    def new_timespan(interp, type_spec, args):
        return make_timespan(args)

    registry.function('DateTime.DaysInMonth', days_in_month, 2, 2, category='datetime')
    registry.function('DateTime.IsLeapYear', is_leap_year, 1, 1, category='datetime')
    registry.function('DateTime.Compare', date_compare, 2, 2, category='datetime')
    registry.constant(('DateTime.MinValue', 'Date.MinValue'), _EPOCH)
    registry.constant(('DateTime.MaxValue', 'Date.MaxValue'), datetime(9999, 12, 31, 23, 59, 59))
    registry.constructor(('DateTime', 'Date'), new_date)
    registry.constructor('TimeSpan', new_timespan)
    registry.function('TimeSpan.FromDays', lambda interp, args: TimeSpanVal(timedelta(days=to_double(args[0]))),
                      1, 1, category='datetime')
    registry.function('TimeSpan.FromHours', lambda interp, args: TimeSpanVal(timedelta(hours=to_double(args[0]))),
                      1, 1, category='datetime')
    registry.function('TimeSpan.FromMinutes',
                      lambda interp, args: TimeSpanVal(timedelta(minutes=to_double(args[0]))),
                      1, 1, category='datetime')
    registry.function('TimeSpan.FromSeconds',
                      lambda interp, args: TimeSpanVal(timedelta(seconds=to_double(args[0]))),
                      1, 1, category='datetime')
    registry.function('TimeSpan.FromMilliseconds',
                      lambda interp, args: TimeSpanVal(timedelta(milliseconds=to_double(args[0]))),
                      1, 1, category='datetime')
    registry.constant('TimeSpan.Zero', TimeSpanVal(timedelta(0)))

    # ------------------------------------------------------------------
    # Members of date values
    # ------------------------------------------------------------------
    def adder(unit):
        def add(interp, value, args):
            return _shift(value, timedelta(**{unit: to_double(args[0])}))
        return add

    def add_months_m(interp, value, args):
        return add_months(value, to_integer(args[0]))

    def add_years(interp, value, args):
        return add_months(value, to_integer(args[0]) * 12)

    def add_span(interp, value, args):
        return _shift(value, args[0].delta)

    def subtract(interp, value, args):
        other = args[0]
        if isinstance(other, TimeSpanVal):
            return _shift(value, -other.delta)
        return TimeSpanVal(value - to_date(other))

    def to_string_m(interp, value, args):
        fmt = text_arg(args, 0)
        return format_date_pattern(value, fmt) if fmt else to_string(value)

    def compare_to(interp, value, args):
        other = to_date(args[0])
        return (value > other) - (value < other)

    def ticks(interp, value, args):
        delta = value - _EPOCH
        return Long((delta.days * 86400 + delta.seconds) * TICKS_PER_SECOND + delta.microseconds * 10)

    date_members = {
        'Year': lambda interp, d, args: d.year,
        'Month': lambda interp, d, args: d.month,
        'Day': lambda interp, d, args: d.day,
        'Hour': lambda interp, d, args: d.hour,
        'Minute': lambda interp, d, args: d.minute,
        'Second': lambda interp, d, args: d.second,
        'Millisecond': lambda interp, d, args: d.microsecond // 1000,
        'DayOfYear': lambda interp, d, args: d.timetuple().tm_yday,
        'DayOfWeek': lambda interp, d, args: day_of_week(d),
        'Date': lambda interp, d, args: datetime(d.year, d.month, d.day),
        'TimeOfDay': lambda interp, d, args: TimeSpanVal(d - datetime(d.year, d.month, d.day)),
        'Ticks': ticks,
        'ToShortDateString': lambda interp, d, args: format_date_pattern(d, 'd'),
        'ToLongDateString': lambda interp, d, args: format_date_pattern(d, 'D'),
        'ToShortTimeString': lambda interp, d, args: format_date_pattern(d, 't'),
        'ToLongTimeString': lambda interp, d, args: format_date_pattern(d, 'T'),
    }
    for name, fn in date_members.items():
        registry.method('date', name, fn, 0, 0, category='datetime')
    registry.method('date', 'AddDays', adder('days'), 1, 1, category='datetime')
    registry.method('date', 'AddHours', adder('hours'), 1, 1, category='datetime')
    registry.method('date', 'AddMinutes', adder('minutes'), 1, 1, category='datetime')
    registry.method('date', 'AddSeconds', adder('seconds'), 1, 1, category='datetime')
    registry.method('date', 'AddMilliseconds', adder('milliseconds'), 1, 1, category='datetime')
    registry.method('date', 'AddMonths', add_months_m, 1, 1, category='datetime')
    registry.method('date', 'AddYears', add_years, 1, 1, category='datetime')
    registry.method('date', 'Add', add_span, 1, 1, category='datetime')
    registry.method('date', 'Subtract', subtract, 1, 1, category='datetime')
    registry.method('date', 'ToString', to_string_m, 0, 1, category='datetime')
    registry.method('date', 'CompareTo', compare_to, 1, 1, category='datetime')

    # ------------------------------------------------------------------
    # Members of TimeSpan values
    # ------------------------------------------------------------------
    span_members = {
        'Days': lambda interp, s, args: _parts(s)[0],
        'Hours': lambda interp, s, args: _parts(s)[1],
        'Minutes': lambda interp, s, args: _parts(s)[2],
        'Seconds': lambda interp, s, args: _parts(s)[3],
        'Milliseconds': lambda interp, s, args: _parts(s)[4],
        'TotalDays': lambda interp, s, args: s.total_seconds / 86400,
        'TotalHours': lambda interp, s, args: s.total_seconds / 3600,
        'TotalMinutes': lambda interp, s, args: s.total_seconds / 60,
        'TotalSeconds': lambda interp, s, args: s.total_seconds,
        'TotalMilliseconds': lambda interp, s, args: s.total_seconds * 1000,
        'Ticks': lambda interp, s, args: Long(round(s.total_seconds * TICKS_PER_SECOND)),
        'Negate': lambda interp, s, args: TimeSpanVal(-s.delta),
        'Duration': lambda interp, s, args: TimeSpanVal(abs(s.delta)),
    }
    for name, fn in span_members.items():
        registry.method('timespan', name, fn, 0, 0, category='datetime')
    registry.method('timespan', 'Add', lambda interp, s, args: TimeSpanVal(s.delta + args[0].delta), 1, 1,
                    category='datetime')
    registry.method('timespan', 'Subtract', lambda interp, s, args: TimeSpanVal(s.delta - args[0].delta), 1, 1,
                    category='datetime')
    registry.method('timespan', 'ToString', lambda interp, s, args: s.display_name, 0, 1, category='datetime')

