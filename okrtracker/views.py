from django.db.models import Count
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from accounts.decorators import api_login_required
from okrs.models import OKR, OKRStatus
from okrtracker.timezone_utils import get_user_today, quarter_for


@require_GET
@api_login_required
def home(request):
    """
    Dashboard summary for the signed-in user.

    Counts OKRs by status and reports the user's current quarter so a new
    form can default to it.
    """
    today = get_user_today(request)

    counts = {status: 0 for status in OKRStatus.values}
    rows = OKR.objects.owned_by(request.user.pk).values('status').annotate(total=Count('id'))
    for row in rows:
        counts[row['status']] = row['total']

    return JsonResponse({
        'success': True,
        'email': request.user.email,
        'today': today.isoformat(),
        'current_quarter': quarter_for(today),
        'current_year': today.year,
        'total': sum(counts.values()),
        'by_status': counts,
    })
