"""
Create, update and delete OKRs on behalf of a signed-in user.

Every operation takes an ``AuthContext`` naming the caller. All reads and
writes are filtered to rows the caller owns, so another user's OKR is
indistinguishable from a missing one.
"""
import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import NotFoundError, StoreError, ValidationError
from .extraction import OKRDraft
from .models import MAX_YEAR, MIN_YEAR, OKR, QUARTER_CHOICES, OKRStatus
from .notifications import dispatch_notification

logger = logging.getLogger(__name__)

QUARTERS = [q for q, _ in QUARTER_CHOICES]
TITLE_MAX_LENGTH = OKR._meta.get_field('title').max_length
EDITABLE_FIELDS = ['title', 'description', 'objective', 'quarter', 'year', 'status', 'progress', 'key_results']


@dataclass(frozen=True)
class AuthContext:
    """The signed-in caller."""

    user_id: int
    email: str

    @classmethod
    def from_user(cls, user):
        return cls(user_id=user.pk, email=user.email)


def _text(data, name):
    value = data.get(name)
    if value is None:
        return ''
    if not isinstance(value, str):
        return None
    return value.strip()


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _clean_key_results(value, errors):
    if not isinstance(value, list) or not value:
        errors['key_results'] = 'At least one key result is required'
        return []

    cleaned = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            errors[f'key_results.{index}'] = 'Key result must be an object'
            continue

        description = item.get('description')
        target = item.get('target')
        current = item.get('current')

        if not isinstance(description, str) or not description.strip():
            errors[f'key_results.{index}.description'] = 'Key result description is required'
        if _is_int(target) or isinstance(target, float):
            target = str(target)
        if not isinstance(target, str) or not target.strip():
            errors[f'key_results.{index}.target'] = 'Target is required'
        if current is None or current == '':
            current = '0'
        elif _is_int(current) or isinstance(current, float):
            current = str(current)
        elif not isinstance(current, str):
            errors[f'key_results.{index}.current'] = 'Current value must be text or a number'

        if isinstance(description, str) and isinstance(target, str) and isinstance(current, str):
            cleaned.append({
                'description': description.strip(),
                'target': target.strip(),
                'current': current.strip() or '0',
            })
    return cleaned


def validate_okr(data, include_state=False):
    """
    Check an OKR payload and return the cleaned fields.

    ``include_state`` adds the status and progress checks used when editing.

    Raises:
        ValidationError: Naming every offending field.
    """
    errors = {}
    cleaned = {}

    title = _text(data, 'title')
    if not title:
        errors['title'] = 'Title is required'
    elif len(title) > TITLE_MAX_LENGTH:
        errors['title'] = f'Title must be at most {TITLE_MAX_LENGTH} characters'
    cleaned['title'] = title

    description = _text(data, 'description')
    if description is None:
        errors['description'] = 'Description must be text'
    cleaned['description'] = description or ''

    objective = _text(data, 'objective')
    if not objective:
        errors['objective'] = 'Objective is required'
    cleaned['objective'] = objective

    quarter = _text(data, 'quarter')
    if quarter not in QUARTERS:
        errors['quarter'] = f"Quarter must be one of {', '.join(QUARTERS)}"
    cleaned['quarter'] = quarter

    year = data.get('year')
    if not _is_int(year):
        errors['year'] = 'Year must be a whole number'
    elif not MIN_YEAR <= year <= MAX_YEAR:
        errors['year'] = f'Year must be between {MIN_YEAR} and {MAX_YEAR}'
    cleaned['year'] = year

    cleaned['key_results'] = _clean_key_results(data.get('key_results'), errors)

    if include_state:
        status = data.get('status')
        if status not in OKRStatus.values:
            errors['status'] = f"Status must be one of {', '.join(OKRStatus.values)}"
        cleaned['status'] = status

        progress = data.get('progress')
        if not _is_int(progress):
            errors['progress'] = 'Progress must be a whole number'
        elif not 0 <= progress <= 100:
            errors['progress'] = 'Progress must be between 0 and 100'
        cleaned['progress'] = progress

    if errors:
        raise ValidationError(errors)
    return cleaned


def okr_to_dict(okr):
    return {field: getattr(okr, field) for field in EDITABLE_FIELDS}


class OKRLifecycle:
    """
    Validates OKR changes, writes them, and schedules the notification email.

    ``dispatcher`` is called as ``dispatcher(email, title, action)`` after the
    write commits. It defaults to a background-thread sender.
    """

    def __init__(self, dispatcher=None):
        self.dispatcher = dispatcher

    def _scoped(self, ctx):
        return OKR.objects.owned_by(ctx.user_id)

    def _notify_on_commit(self, ctx, title, action):
        def send():
            try:
                dispatcher = self.dispatcher or dispatch_notification
                dispatcher(ctx.email, title, action)
            except Exception:
                logger.exception(f"Could not schedule '{action}' notification for '{title}'")

        transaction.on_commit(send)

    def list(self, ctx):
        """The caller's OKRs, newest first."""
        try:
            return list(self._scoped(ctx).order_by('-created_at'))
        except DatabaseError as e:
            raise StoreError(str(e)) from e

    def get(self, ctx, okr_id):
        try:
            return self._scoped(ctx).get(pk=okr_id)
        except (OKR.DoesNotExist, DjangoValidationError):
            raise NotFoundError()
        except DatabaseError as e:
            raise StoreError(str(e)) from e

    def create(self, ctx, draft):
        """
        Create an OKR owned by the caller.

        Status starts as 'active' and progress at 0 whatever the draft says.
        """
        data = draft.to_dict() if isinstance(draft, OKRDraft) else draft
        cleaned = validate_okr(data)

        try:
            with transaction.atomic():
                okr = OKR.objects.create(
                    owner_id=ctx.user_id,
                    status=OKRStatus.ACTIVE,
                    progress=0,
                    **cleaned,
                )
        except DatabaseError as e:
            logger.error(f"Failed to create OKR '{cleaned['title']}': {e}")
            raise StoreError(str(e)) from e

        logger.info(f"Created OKR {okr.pk} for user {ctx.user_id}")
        self._notify_on_commit(ctx, okr.title, 'created')
        return okr

    def update(self, ctx, okr_id, patch):
        """
        Apply ``patch`` to one of the caller's OKRs.

        Fields missing from the patch keep their stored values. The merged
        record is validated in full and written as a single row update.
        """
        current = self.get(ctx, okr_id)
        merged = okr_to_dict(current)
        merged.update({k: v for k, v in patch.items() if k in EDITABLE_FIELDS})
        cleaned = validate_okr(merged, include_state=True)

        try:
            with transaction.atomic():
                rows = self._scoped(ctx).filter(pk=okr_id).update(updated_at=timezone.now(), **cleaned)
        except DatabaseError as e:
            logger.error(f"Failed to update OKR {okr_id}: {e}")
            raise StoreError(str(e)) from e

        if rows == 0:
            raise NotFoundError()

        logger.info(f"Updated OKR {okr_id} for user {ctx.user_id}")
        self._notify_on_commit(ctx, cleaned['title'], 'updated')
        return self.get(ctx, okr_id)

    def delete(self, ctx, okr_id):
        """Permanently delete one of the caller's OKRs. No notification is sent."""
        try:
            with transaction.atomic():
                deleted, _ = self._scoped(ctx).filter(pk=okr_id).delete()
        except DjangoValidationError:
            raise NotFoundError()
        except DatabaseError as e:
            logger.error(f"Failed to delete OKR {okr_id}: {e}")
            raise StoreError(str(e)) from e

        if deleted == 0:
            raise NotFoundError()

        logger.info(f"Deleted OKR {okr_id} for user {ctx.user_id}")
