"""
Validation for newsletter sign-up submissions.
"""
import re
from typing import Any, Dict

from data_models import Subscriber

NAME_MAX_LENGTH = 60
PHONE_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 254
# separators are mandatory so each run of word characters has one parse
EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ''


def validate_subscriber(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a submitted name/email/phone and return validation results"""
    validation_result = {
        'is_valid': False,
        'errors': {},
        'subscriber': None,
    }
    payload = payload if isinstance(payload, dict) else {}
    errors = validation_result['errors']

    name = _clean(payload.get('name'))
    email = _clean(payload.get('email'))
    phone = _clean(payload.get('phone')) or None

    if not name:
        errors['name'] = 'Please provide a name'
    elif len(name) > NAME_MAX_LENGTH:
        errors['name'] = f'Name cannot be more than {NAME_MAX_LENGTH} characters'

    if not email:
        errors['email'] = 'Please provide an email'
    elif len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        errors['email'] = 'Please provide a valid email'

    if phone and len(phone) > PHONE_MAX_LENGTH:
        errors['phone'] = f'Phone number cannot be more than {PHONE_MAX_LENGTH} characters'

    if not errors:
        validation_result['is_valid'] = True
        validation_result['subscriber'] = Subscriber(name=name, email=email, phone=phone)

    return validation_result
