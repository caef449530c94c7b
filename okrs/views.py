import json
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from accounts.decorators import api_login_required
from okrtracker.timezone_utils import get_user_today

from .exceptions import ExtractionError, OKRError, StoreError, ValidationError
from .extraction import OKRDraft, extract_draft
from .lifecycle import AuthContext, OKRLifecycle

logger = logging.getLogger(__name__)

lifecycle = OKRLifecycle()


def serialize_okr(okr):
    """Serialize an OKR to a dictionary for JSON responses."""
    return {
        'id': str(okr.id),
        'title': okr.title,
        'description': okr.description,
        'objective': okr.objective,
        'quarter': okr.quarter,
        'year': okr.year,
        'status': okr.status,
        'progress': okr.progress,
        'key_results': okr.key_results,
        'key_result_count': okr.key_result_count,
        'created_at': okr.created_at.isoformat() if okr.created_at else None,
        'updated_at': okr.updated_at.isoformat() if okr.updated_at else None,
    }


def error_response(error):
    """Turn an OKRError into the JSON error shape used by every endpoint."""
    body = {'success': False, 'error': error.message or str(error)}
    if isinstance(error, ValidationError):
        body['errors'] = error.errors
    return JsonResponse(body, status=error.status_code)


def _load_json(request):
    try:
        data = json.loads(request.body or b'{}')
    except UnicodeDecodeError as e:
        raise json.JSONDecodeError('Body is not valid UTF-8', '', 0) from e
    if not isinstance(data, dict):
        raise json.JSONDecodeError('Expected a JSON object', request.body.decode(errors='replace'), 0)
    return data


@require_GET
@api_login_required
def okr_list(request):
    """List the signed-in user's OKRs, newest first."""
    ctx = AuthContext.from_user(request.user)
    try:
        okrs = lifecycle.list(ctx)
    except StoreError as e:
        return error_response(e)
    return JsonResponse({
        'success': True,
        'okrs': [serialize_okr(okr) for okr in okrs],
    })


@require_POST
@api_login_required
def create_okr(request):
    """
    Create an OKR via AJAX.

    Expects JSON: title, description, objective, quarter, year, key_results.
    Status and progress are ignored; new OKRs start active at 0%.
    """
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    ctx = AuthContext.from_user(request.user)
    try:
        okr = lifecycle.create(ctx, data)
    except OKRError as e:
        return error_response(e)

    return JsonResponse({
        'success': True,
        'message': 'OKR created successfully!',
        'okr': serialize_okr(okr)
    }, status=201)


@require_GET
@api_login_required
def get_okr(request, okr_id):
    ctx = AuthContext.from_user(request.user)
    try:
        okr = lifecycle.get(ctx, okr_id)
    except OKRError as e:
        return error_response(e)
    return JsonResponse({'success': True, 'okr': serialize_okr(okr)})


@require_http_methods(["PATCH"])
@api_login_required
def update_okr(request, okr_id):
    """Update an OKR via AJAX. Fields left out of the body keep their values."""
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    ctx = AuthContext.from_user(request.user)
    try:
        okr = lifecycle.update(ctx, okr_id, data)
    except OKRError as e:
        return error_response(e)

    return JsonResponse({
        'success': True,
        'message': 'OKR updated successfully!',
        'okr': serialize_okr(okr)
    })


@require_http_methods(["DELETE"])
@api_login_required
def delete_okr(request, okr_id):
    ctx = AuthContext.from_user(request.user)
    try:
        lifecycle.delete(ctx, okr_id)
    except OKRError as e:
        return error_response(e)
    return JsonResponse({'success': True, 'message': 'OKR deleted successfully!'})


@require_POST
@api_login_required
def extract_okr(request):
    """
    Pre-fill a creation form from an uploaded spreadsheet.

    Expects multipart POST data:
        - file: the .xlsx or .xls file
        - draft: (optional) JSON of the current form state

    Returns JSON:
        - success: boolean
        - draft: the updated form state, or the unchanged one on failure
    """
    default_year = get_user_today(request).year

    raw_draft = request.POST.get('draft')
    try:
        draft = OKRDraft.from_dict(json.loads(raw_draft) if raw_draft else None, year=default_year)
    except (json.JSONDecodeError, TypeError, AttributeError):
        return JsonResponse({'success': False, 'error': 'Invalid draft JSON'}, status=400)

    upload = request.FILES.get('file')
    if upload is None:
        return JsonResponse({
            'success': False,
            'error': 'A spreadsheet file is required',
            'draft': draft.to_dict(),
        }, status=400)

    try:
        updated = extract_draft(upload.read(), draft)
    except ExtractionError as e:
        logger.warning(f"Spreadsheet '{upload.name}' could not be parsed for user {request.user.pk}")
        return JsonResponse({
            'success': False,
            'error': e.message,
            'draft': draft.to_dict(),
        }, status=e.status_code)

    return JsonResponse({
        'success': True,
        'message': 'Excel file parsed successfully!',
        'draft': updated.to_dict(),
    })
