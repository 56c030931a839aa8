"""Forms for the campaign blueprint."""

from wtforms import FloatField, StringField, TextAreaField
from wtforms.validators import (
    URL,
    AnyOf,
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    ValidationError,
)

from wefed.constants import CAMPAIGN_CATEGORIES, MIN_CAMPAIGN_GOAL, ORGANIZATION_TYPES
from wefed.core.forms import (
    ApiForm,
    IsoDateTimeField,
    ListField,
    MappingField,
    strip_filter,
)
from wefed.utils import utcnow

EDITABLE_FIELDS = (
    "title",
    "description",
    "shortDescription",
    "coverImage",
    "images",
    "video",
    "tags",
    "location",
    "beneficiary",
)
CREATE_FIELDS = EDITABLE_FIELDS + ("goal", "category", "endDate", "organizationType")


def _check_length(field, low, high, label):
    if field.raw_data and not low <= len(field.data or "") <= high:
        raise ValidationError(f"{label} must be {low}-{high} characters")


class _CampaignFields(ApiForm):
    shortDescription = TextAreaField(
        "Short description",
        validators=[
            Length(max=300, message="Short description cannot exceed 300 characters")
        ],
        filters=[strip_filter],
    )
    coverImage = StringField(
        "Cover image",
        validators=[Optional(), URL(message="Please enter a valid URL")],
        filters=[strip_filter],
    )
    images = ListField("Images")
    video = StringField(
        "Video",
        validators=[Optional(), URL(message="Please enter a valid URL")],
        filters=[strip_filter],
    )
    tags = ListField("Tags", max_items=20)
    location = MappingField("Location")
    beneficiary = MappingField("Beneficiary")


class CampaignForm(_CampaignFields):
    """Form for starting a campaign."""

    title = StringField(
        "Title",
        validators=[
            DataRequired(message="Title is required"),
            Length(min=10, max=200, message="Title must be 10-200 characters"),
        ],
        filters=[strip_filter],
    )
    description = TextAreaField(
        "Description",
        validators=[
            DataRequired(message="Description is required"),
            Length(
                min=100, max=10000, message="Description must be 100-10000 characters"
            ),
        ],
        filters=[strip_filter],
    )
    goal = FloatField(
        "Goal",
        validators=[
            InputRequired(message="Goal is required"),
            NumberRange(min=MIN_CAMPAIGN_GOAL, message="Minimum goal is $100"),
        ],
    )
    category = StringField(
        "Category",
        validators=[
            DataRequired(message="Category is required"),
            AnyOf(CAMPAIGN_CATEGORIES, message="Invalid category"),
        ],
    )
    endDate = IsoDateTimeField(
        "End date", validators=[DataRequired(message="End date is required")]
    )
    organizationType = StringField(
        "Organization type",
        validators=[
            Optional(),
            AnyOf(ORGANIZATION_TYPES, message="Invalid organization type"),
        ],
    )

    def validate_endDate(self, field):
        if field.data <= utcnow():
            raise ValidationError("End date must be in the future")

    def campaign_data(self):
        return {name: self[name].data for name in CREATE_FIELDS}


class UpdateCampaignForm(_CampaignFields):
    """Form for editing a campaign. Only fields present in the body change."""

    title = StringField("Title", filters=[strip_filter])
    description = TextAreaField("Description", filters=[strip_filter])

    def validate_title(self, field):
        _check_length(field, 10, 200, "Title")

    def validate_description(self, field):
        _check_length(field, 100, 10000, "Description")

    def updates(self):
        return self.present_data(EDITABLE_FIELDS)


class CampaignUpdateForm(ApiForm):
    """Form for an organizer's progress update."""

    title = StringField(
        "Title",
        validators=[DataRequired(message="Title is required"), Length(max=200)],
        filters=[strip_filter],
    )
    content = TextAreaField(
        "Content",
        validators=[DataRequired(message="Content is required"), Length(max=10000)],
        filters=[strip_filter],
    )
    media = ListField("Media")
