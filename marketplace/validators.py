"""
Custom validators for marketplace models.
"""

from django.core.exceptions import ValidationError


SKILL_LEVELS = ('beginner', 'intermediate', 'advanced', 'expert')

SKILL_NAME_MIN_LENGTH = 2
SKILL_NAME_MAX_LENGTH = 50
SKILL_DESCRIPTION_MIN_LENGTH = 10
SKILL_DESCRIPTION_MAX_LENGTH = 500


def validate_profile_image(image):
    """
    Validate profile image file.

    Checks:
    - File size (max 5MB)
    - File format (jpg, jpeg, png, gif)

    Args:
        image: UploadedFile object

    Raises:
        ValidationError: If image is invalid
    """
    if not image:
        return

    max_size = 5 * 1024 * 1024
    if image.size > max_size:
        raise ValidationError(
            f'Image file size cannot exceed 5MB. Current size: {image.size / (1024 * 1024):.2f}MB',
            code='image_too_large'
        )

    valid_extensions = ['jpg', 'jpeg', 'png', 'gif']
    file_name = image.name.lower()

    if not any(file_name.endswith(f'.{ext}') for ext in valid_extensions):
        raise ValidationError(
            f'Invalid image format. Allowed formats: {", ".join(valid_extensions)}',
            code='invalid_image_format'
        )

    valid_content_types = ['image/jpeg', 'image/png', 'image/gif']

    if hasattr(image, 'content_type') and image.content_type:
        if image.content_type not in valid_content_types:
            raise ValidationError(
                f'Invalid image content type: {image.content_type}',
                code='invalid_content_type'
            )


def validate_skill_level(value):
    if value not in SKILL_LEVELS:
        raise ValidationError(
            f'Invalid skill level. Must be one of: {", ".join(SKILL_LEVELS)}.',
            code='invalid_skill_level'
        )


def _validate_skill_name(name):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Skill name is required.', code='skill_name_required')

    length = len(name.strip())
    if length < SKILL_NAME_MIN_LENGTH or length > SKILL_NAME_MAX_LENGTH:
        raise ValidationError(
            f'Skill name must be between {SKILL_NAME_MIN_LENGTH} and '
            f'{SKILL_NAME_MAX_LENGTH} characters.',
            code='invalid_skill_name'
        )


def validate_skill_snapshot(value):
    """
    Validate a skill snapshot embedded in a swap request.

    A snapshot is a mapping with ``name``, ``description`` and ``level``,
    copied from the user's skill list when the request is created.

    Raises:
        ValidationError: If a key is missing or has an invalid value
    """
    if not isinstance(value, dict):
        raise ValidationError('Skill snapshot must be an object.', code='invalid_snapshot')

    _validate_skill_name(value.get('name'))

    description = value.get('description')
    if not isinstance(description, str) or not description.strip():
        raise ValidationError('Skill description is required.', code='skill_description_required')

    validate_skill_level(value.get('level'))


def validate_rated_skill(value):
    """Validate the ``{name, level}`` snapshot stored on a rating."""
    if not isinstance(value, dict):
        raise ValidationError('Rated skill must be an object.', code='invalid_snapshot')

    _validate_skill_name(value.get('name'))
    validate_skill_level(value.get('level'))
