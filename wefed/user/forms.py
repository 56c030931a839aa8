"""Forms for the user blueprint."""

from wtforms import StringField
from wtforms.validators import URL, Length, Optional, ValidationError

from wefed.core.forms import ApiForm, strip_filter

PROFILE_FIELDS = ("name", "bio", "location", "website", "avatar", "role")


class UpdateProfileForm(ApiForm):
    """Form for a partial profile update."""

    name = StringField("Name", filters=[strip_filter])
    bio = StringField(
        "Bio",
        validators=[Length(max=500, message="Bio cannot exceed 500 characters")],
        filters=[strip_filter],
    )
    location = StringField(
        "Location",
        validators=[Length(max=100, message="Location cannot exceed 100 characters")],
        filters=[strip_filter],
    )
    website = StringField(
        "Website",
        validators=[Optional(), URL(message="Please enter a valid URL")],
        filters=[strip_filter],
    )
    avatar = StringField(
        "Avatar",
        validators=[Optional(), URL(message="Please enter a valid URL")],
        filters=[strip_filter],
    )
    role = StringField(
        "Role", validators=[Optional(), Length(max=100)], filters=[strip_filter]
    )

    def validate_name(self, field):
        """A name that is sent must stay within bounds."""
        if field.raw_data and not 2 <= len(field.data or "") <= 100:
            raise ValidationError("Name must be 2-100 characters")

    def profile_updates(self):
        """Return the profile fields present in the request body."""
        return self.present_data(PROFILE_FIELDS)
