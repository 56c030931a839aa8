"""Forms for the group blueprint."""

from wtforms import StringField, TextAreaField
from wtforms.validators import (
    URL,
    AnyOf,
    DataRequired,
    Length,
    Optional,
    ValidationError,
)

from wefed.constants import (
    DEFAULT_GROUP_SETTINGS,
    GROUP_CATEGORIES,
    GROUP_PRIVACY_LEVELS,
)
from wefed.core.forms import ApiForm, ListField, MappingField, strip_filter

EDITABLE_FIELDS = (
    "name",
    "description",
    "category",
    "privacy",
    "tags",
    "coverImage",
    "rules",
    "settings",
)


def _check_settings(settings):
    for key, value in (settings or {}).items():
        if key not in DEFAULT_GROUP_SETTINGS:
            raise ValidationError(f"Unknown setting: {key}")
        if not isinstance(value, bool):
            raise ValidationError(f"Setting {key} must be true or false")


class _GroupFields(ApiForm):
    category = StringField(
        "Category",
        validators=[Optional(), AnyOf(GROUP_CATEGORIES, message="Invalid category")],
    )
    privacy = StringField(
        "Privacy",
        validators=[
            Optional(),
            AnyOf(GROUP_PRIVACY_LEVELS, message="Invalid privacy setting"),
        ],
    )
    tags = ListField("Tags", max_items=20)
    coverImage = StringField(
        "Cover image",
        validators=[Optional(), URL(message="Please enter a valid URL")],
        filters=[strip_filter],
    )
    rules = ListField("Rules")
    settings = MappingField("Settings")

    def validate_settings(self, field):
        _check_settings(field.data)


class GroupForm(_GroupFields):
    """Form for creating a new group."""

    name = StringField(
        "Group Name",
        validators=[
            DataRequired(message="Group name is required"),
            Length(min=3, max=100, message="Group name must be 3-100 characters"),
        ],
        filters=[strip_filter],
    )
    description = TextAreaField(
        "Description",
        validators=[
            DataRequired(message="Description is required"),
            Length(max=2000, message="Description cannot exceed 2000 characters"),
        ],
        filters=[strip_filter],
    )

    def group_data(self):
        return {name: self[name].data for name in EDITABLE_FIELDS}


class UpdateGroupForm(_GroupFields):
    """Form for editing a group. Only fields present in the body change."""

    name = StringField("Group Name", filters=[strip_filter])
    description = TextAreaField("Description", filters=[strip_filter])

    def validate_name(self, field):
        if field.raw_data and not 3 <= len(field.data or "") <= 100:
            raise ValidationError("Group name must be 3-100 characters")

    def validate_description(self, field):
        if field.raw_data and not 1 <= len(field.data or "") <= 2000:
            raise ValidationError("Description must be 1-2000 characters")

    def updates(self):
        return self.present_data(EDITABLE_FIELDS)


class JoinRequestForm(ApiForm):
    """Optional note sent with a request to join a private group."""

    message = TextAreaField(
        "Message",
        validators=[Length(max=500, message="Message cannot exceed 500 characters")],
        filters=[strip_filter],
    )
