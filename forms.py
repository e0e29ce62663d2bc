from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField
from wtforms.validators import Length, Regexp, ValidationError

from exceptions import ValidationFailedError


class TextField(StringField):
    """StringField that takes JSON scalars the way a JSON body binder would."""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if value is None or isinstance(value, str):
            self.data = value
        elif isinstance(value, bool):
            self.data = "true" if value else "false"
        elif isinstance(value, (int, float)):
            self.data = str(value)
        else:
            self.data = None
            raise ValueError(f"{self.label.text} must be a string")


class Required:
    """Non-blank check that lets the rest of the chain report too."""

    field_flags = {"required": True}

    def __init__(self, message):
        self.message = message

    def __call__(self, form, field):
        if field.data is None or not field.data.strip():
            raise ValidationError(self.message)


class PresentLength(Length):
    def __call__(self, form, field):
        if field.data is not None:
            super().__call__(form, field)


class PresentRegexp(Regexp):
    def __call__(self, form, field, message=None):
        if field.data is not None:
            super().__call__(form, field, message)


class ApiForm(FlaskForm):
    """Form fed from a JSON body or form fields, without CSRF (API clients)."""

    class Meta:
        csrf = False

    @classmethod
    def from_request(cls):
        if not request.is_json:
            return cls()
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationFailedError(["Request body must be a JSON object"])
        # one value per key, so list values reach the field intact
        return cls(formdata=MultiDict(list(payload.items())))

    def validated(self):
        """Return self when valid, otherwise raise with every field's messages."""
        if self.validate_on_submit():
            return self
        messages = []
        for field in self:
            messages.extend(field.errors)
        raise ValidationFailedError(messages)


class BookForm(ApiForm):
    title = TextField("Title", validators=[
        Required(message="Title is required"),
        PresentLength(min=3, message="Title must be at least 3 characters long"),
        PresentRegexp(r"^[A-Z].*", message="Title must start with a capital letter"),
    ])
    author = TextField("Author", validators=[
        Required(message="Author is required"),
        PresentRegexp(r"^[A-Z][a-z]+ [A-Z][a-z]+$", message="Author must contain a capitalized name and surname"),
    ])


class MemberForm(ApiForm):
    name = TextField("Name", validators=[Required(message="Name is required")])
