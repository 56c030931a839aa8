"""Forms for the post blueprint."""

from wtforms import StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, Optional, ValidationError

from wefed.constants import MEDIA_TYPES, POST_TYPES, POST_VISIBILITIES
from wefed.core.forms import ApiForm, ListField, strip_filter

CONTENT_RULES = [
    DataRequired(message="Content is required"),
    Length(max=5000, message="Content cannot exceed 5000 characters"),
]
EDITABLE_FIELDS = ("content", "visibility", "tags")


def _lowercase_tags(tags):
    return [t.lower() for t in tags if isinstance(t, str)] if tags else tags


class PostForm(ApiForm):
    """Form for creating a post."""

    content = TextAreaField("Content", validators=CONTENT_RULES, filters=[strip_filter])
    media = ListField("Media")
    postType = StringField(
        "Post type",
        validators=[Optional(), AnyOf(POST_TYPES, message="Invalid post type")],
    )
    visibility = StringField(
        "Visibility",
        validators=[
            Optional(),
            AnyOf(POST_VISIBILITIES, message="Invalid visibility"),
        ],
    )
    tags = ListField("Tags", filters=[_lowercase_tags])

    def validate_media(self, field):
        """Every attachment needs a known type and a URL."""
        for item in field.data:
            if not isinstance(item, dict):
                raise ValidationError("Media items must be objects")
            if item.get("type") not in MEDIA_TYPES:
                raise ValidationError("Invalid media type")
            if not item.get("url"):
                raise ValidationError("Media URL is required")

    def post_data(self):
        return {
            "content": self.content.data,
            "media": self.media.data,
            "postType": self.postType.data or None,
            "visibility": self.visibility.data or None,
            "tags": self.tags.data,
        }


class UpdatePostForm(ApiForm):
    """Form for editing a post. Only fields present in the body change."""

    content = TextAreaField("Content", filters=[strip_filter])
    visibility = StringField(
        "Visibility",
        validators=[
            Optional(),
            AnyOf(POST_VISIBILITIES, message="Invalid visibility"),
        ],
    )
    tags = ListField("Tags", filters=[_lowercase_tags])

    def validate_content(self, field):
        """Edited content must not be blank or too long."""
        if field.raw_data and not 1 <= len(field.data or "") <= 5000:
            raise ValidationError("Content must be 1-5000 characters")

    def updates(self):
        return self.present_data(EDITABLE_FIELDS)


class CommentForm(ApiForm):
    """Form for commenting on a post."""

    content = TextAreaField(
        "Content",
        validators=[
            DataRequired(message="Comment content is required"),
            Length(max=1000, message="Comment cannot exceed 1000 characters"),
        ],
        filters=[strip_filter],
    )
