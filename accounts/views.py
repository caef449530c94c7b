"""
Account endpoints: sign-up, sign-in, sign-out and password recovery.

Authentication itself is Django's (sessions + django.contrib.auth); these
views only validate input and return JSON in the same shape as the OKR API.
"""
import json
import logging

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model, login, logout, update_session_auth_hash
from django.contrib.auth.forms import PasswordResetForm
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import redirect
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from django.views.decorators.http import require_GET, require_POST

from .decorators import api_login_required

logger = logging.getLogger(__name__)

User = get_user_model()


def _load_json(request):
    try:
        data = json.loads(request.body or b'{}')
    except UnicodeDecodeError as e:
        raise json.JSONDecodeError('Body is not valid UTF-8', '', 0) from e
    if not isinstance(data, dict):
        raise json.JSONDecodeError('Expected a JSON object', request.body.decode(errors='replace'), 0)
    return data


def _password_errors(password, user=None):
    try:
        validate_password(password, user=user)
    except ValidationError as e:
        return ' '.join(e.messages)
    return None


def serialize_user(user):
    profile = getattr(user, 'profile', None)
    return {
        'id': user.pk,
        'email': user.email,
        'first_name': profile.first_name if profile else user.first_name,
        'last_name': profile.last_name if profile else user.last_name,
    }


@require_POST
def sign_up(request):
    """
    Register a new account and sign it in.

    Expects JSON: email, password, optional first_name / last_name.
    """
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    first_name = str(data.get('first_name') or '').strip()
    last_name = str(data.get('last_name') or '').strip()

    errors = {}
    try:
        validate_email(email)
    except ValidationError:
        errors['email'] = 'Enter a valid email address'
    else:
        if len(email) > User._meta.get_field('username').max_length:
            errors['email'] = 'Email address is too long'
        elif User.objects.filter(email__iexact=email).exists():
            errors['email'] = 'An account with this email already exists'

    if not isinstance(password, str) or not password:
        errors['password'] = 'Password is required'
    else:
        message = _password_errors(password)
        if message:
            errors['password'] = message

    if errors:
        return JsonResponse({'success': False, 'errors': errors}, status=400)

    with transaction.atomic():
        # The profile row is created by the post_save signal on User
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )

    login(request, user, backend='django.contrib.auth.backends.ModelBackend')
    logger.info(f"New account created for {email}")
    return JsonResponse({'success': True, 'user': serialize_user(user)}, status=201)


@require_POST
def sign_in(request):
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    user = authenticate(request, username=email, password=password)
    if user is None:
        return JsonResponse({'success': False, 'error': 'Invalid email or password'}, status=400)

    login(request, user)
    return JsonResponse({'success': True, 'user': serialize_user(user)})


@require_POST
def sign_out(request):
    logout(request)
    return JsonResponse({'success': True})


@require_POST
def request_password_reset(request):
    """
    Email a password reset link.

    Always reports success so the response does not reveal whether an
    account exists for the address.
    """
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    form = PasswordResetForm({'email': str(data.get('email') or '').strip()})
    if not form.is_valid():
        return JsonResponse({'success': False, 'errors': {'email': 'Enter a valid email address'}}, status=400)

    form.save(
        request=request,
        use_https=request.is_secure(),
        from_email=settings.DEFAULT_FROM_EMAIL,
        email_template_name='accounts/password_reset_email.txt',
        subject_template_name='accounts/password_reset_subject.txt',
    )
    return JsonResponse({
        'success': True,
        'message': 'If an account exists for that email, a reset link has been sent.'
    })


@require_GET
def password_reset_confirm(request, uidb64, token):
    """
    Target of the emailed reset link.

    A valid link signs the user in for a recovery session and redirects to
    the page where the new password is chosen.
    """
    try:
        uid = force_str(urlsafe_base64_decode(uidb64))
        user = User.objects.get(pk=uid)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, token):
        return JsonResponse({'success': False, 'error': 'Reset link is invalid or has expired'}, status=400)

    login(request, user, backend='django.contrib.auth.backends.ModelBackend')
    return redirect(settings.PASSWORD_RESET_REDIRECT_URL)


@require_POST
@api_login_required
def set_new_password(request):
    """Change the signed-in user's password. Expects JSON: password, confirm_password."""
    try:
        data = _load_json(request)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    password = data.get('password') or ''
    confirm_password = data.get('confirm_password') or ''

    errors = {}
    if not isinstance(password, str) or not password:
        errors['password'] = 'Password is required'
    else:
        message = _password_errors(password, user=request.user)
        if message:
            errors['password'] = message
    if password != confirm_password:
        errors['confirm_password'] = "Passwords don't match"

    if errors:
        return JsonResponse({'success': False, 'errors': errors}, status=400)

    request.user.set_password(password)
    request.user.save(update_fields=['password'])
    update_session_auth_hash(request, request.user)
    logger.info(f"Password updated for user {request.user.pk}")
    return JsonResponse({'success': True, 'message': 'Password updated successfully'})


@require_GET
@api_login_required
def current_user(request):
    return JsonResponse({'success': True, 'user': serialize_user(request.user)})
