"""Shared form plumbing for JSON request bodies."""

from flask_wtf import FlaskForm
from wtforms import Field, ValidationError

from wefed.errors import FormValidationError
from wefed.utils import as_utc, get_json_body


def strip_filter(value):
    """Trim surrounding whitespace from string input."""
    return value.strip() if isinstance(value, str) else value


class ApiForm(FlaskForm):
    """Base form for JSON bodies.

    Flask-WTF feeds ``request.get_json()`` to the form on submitting
    methods. CSRF is off because the API authenticates with bearer tokens.
    """

    class Meta:
        csrf = False

    def validate_or_raise(self):
        """Validate the form and raise a per-field error when it fails."""
        if not self.validate_on_submit():
            raise FormValidationError(self.errors)
        return self

    def present_data(self, fields):
        """Return cleaned data for the listed fields sent in the body."""
        payload = get_json_body()
        return {name: self[name].data for name in fields if name in payload}


class ListField(Field):
    """Accept a JSON array. Scalar items are stripped strings."""

    def __init__(self, label=None, validators=None, max_items=None, **kwargs):
        super().__init__(label, validators, **kwargs)
        self.max_items = max_items

    def process_formdata(self, valuelist):
        items = []
        for value in valuelist:
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            items.append(value)
        self.data = items

    def _value(self):
        return self.data or []

    def pre_validate(self, form):
        # The form sees a string and a one-item array alike, so check the body.
        raw = get_json_body().get(self.name)
        if raw is not None and not isinstance(raw, list):
            raise ValidationError(f"{self.label.text} must be an array")
        if self.data is None:
            self.data = []
        if not isinstance(self.data, list):
            raise ValidationError(f"{self.label.text} must be an array")
        if self.max_items is not None and len(self.data) > self.max_items:
            raise ValidationError(
                f"{self.label.text} cannot have more than {self.max_items} items"
            )


class IsoDateTimeField(Field):
    """Accept an ISO 8601 timestamp and normalize it to aware UTC."""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] in (None, ""):
            self.data = None
            return
        try:
            self.data = as_utc(valuelist[0])
        except (AttributeError, TypeError, ValueError) as e:
            self.data = None
            raise ValueError("Not a valid ISO 8601 date") from e


class MappingField(Field):
    """Accept a JSON object."""

    def process_formdata(self, valuelist):
        self.data = valuelist[0] if valuelist else None

    def pre_validate(self, form):
        if self.data is not None and not isinstance(self.data, dict):
            raise ValidationError(f"{self.label.text} must be an object")
