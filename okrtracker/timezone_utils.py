import pytz
from django.utils import timezone


def get_user_timezone(request):
    """
    Get the user's timezone from the cookie set by JavaScript.
    Falls back to UTC if no timezone is set.
    """
    user_tz_name = request.COOKIES.get('user_timezone', 'UTC')
    try:
        return pytz.timezone(user_tz_name)
    except pytz.exceptions.UnknownTimeZoneError:
        return pytz.UTC


def get_user_today(request):
    """Get today's date in the user's timezone."""
    user_tz = get_user_timezone(request)
    return timezone.now().astimezone(user_tz).date()


def quarter_for(day):
    """'Q1'..'Q4' for a date."""
    return f"Q{(day.month - 1) // 3 + 1}"
