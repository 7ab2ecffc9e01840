from django import forms
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator

from .choices import ReportStatus
from .models import Report


class MediaUrlsField(forms.CharField):
    """One URL per line in, ordered list of URLs out."""
    widget = forms.Textarea(attrs={'rows': 3})

    def to_python(self, value):
        value = super().to_python(value)
        return [line.strip() for line in (value or '').splitlines() if line.strip()]

    def validate(self, value):
        super().validate(value)
        check = URLValidator()
        for url in value:
            try:
                check(url)
            except ValidationError:
                raise ValidationError(f"'{url}' is not a valid URL.", code='invalid_url')

    def prepare_value(self, value):
        if isinstance(value, (list, tuple)):
            return '\n'.join(value)
        return value


class ReportForm(forms.ModelForm):
    media_urls = MediaUrlsField(required=False, label='Photo / video links')
    location_lat = forms.FloatField(required=False, min_value=-90, max_value=90)
    location_lng = forms.FloatField(required=False, min_value=-180, max_value=180)

    class Meta:
        model = Report
        fields = [
            'title', 'description', 'issue_type', 'department',
            'location_address', 'location_lat', 'location_lng',
            'media_urls', 'voice_note_url',
        ]


class StatusUpdateForm(forms.Form):
    status = forms.ChoiceField(choices=ReportStatus.choices)
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))
