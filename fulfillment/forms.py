from django import forms

from blood.constants import BLOOD_GROUP_CHOICES

from .services.codes import DONOR_CODE_LENGTH, InvalidDonorCode, parse_donor_code
from .services.records import FulfillmentStatus, UrgencyLevel

RADIUS_CHOICES = [
    ('', 'Any distance'),
    ('5', '5 km'),
    ('10', '10 km'),
    ('20', '20 km'),
    ('50', '50 km'),
]


class FulfillmentFilterForm(forms.Form):
    status = forms.ChoiceField(choices=[('', 'All statuses')] + list(FulfillmentStatus.choices), required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    blood_type = forms.ChoiceField(choices=[('', 'All blood types')] + BLOOD_GROUP_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    urgency_level = forms.ChoiceField(choices=[('', 'All urgency levels')] + list(UrgencyLevel.choices), required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    page = forms.IntegerField(min_value=1, required=False, widget=forms.HiddenInput())


class CancelFulfillmentForm(forms.Form):
    reason = forms.CharField(widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    def clean_reason(self):
        reason = self.cleaned_data['reason'].strip()
        if not reason:
            raise forms.ValidationError('Please give a cancellation reason.')
        return reason


class DonorSearchForm(forms.Form):
    radius_km = forms.TypedChoiceField(choices=RADIUS_CHOICES, coerce=float, empty_value=None, required=False, widget=forms.Select(attrs={'class': 'form-control'}))


class SendNotificationsForm(forms.Form):
    donor_ids = forms.MultipleChoiceField(
        widget=forms.CheckboxSelectMultiple,
        error_messages={'required': 'Select at least one donor to notify.'},
    )

    def __init__(self, *args, donors=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['donor_ids'].choices = [(donor.donor_id, donor.full_name) for donor in donors]


class VerifyCodeForm(forms.Form):
    unique_code = forms.CharField(
        max_length=DONOR_CODE_LENGTH,
        widget=forms.TextInput(attrs={'class': 'form-control text-uppercase', 'placeholder': 'DN2601051473', 'autocomplete': 'off'}),
    )

    def clean_unique_code(self):
        try:
            return parse_donor_code(self.cleaned_data['unique_code']).value
        except InvalidDonorCode as exc:
            raise forms.ValidationError(str(exc))


class CompleteDonationForm(forms.Form):
    confirmation_id = forms.CharField(widget=forms.HiddenInput())
    quantity = forms.IntegerField(min_value=1, initial=1, widget=forms.NumberInput(attrs={'class': 'form-control'}))
    hemoglobin = forms.DecimalField(required=False, max_digits=4, decimal_places=1, widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.1'}))
    blood_pressure = forms.CharField(required=False, max_length=15, widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': '120/80'}))
    weight_kg = forms.DecimalField(required=False, max_digits=5, decimal_places=1, widget=forms.NumberInput(attrs={'class': 'form-control'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))
    medical_notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def health_screening(self):
        data = self.cleaned_data
        screening = {
            'hemoglobin': float(data['hemoglobin']) if data.get('hemoglobin') is not None else None,
            'blood_pressure': data.get('blood_pressure') or None,
            'weight_kg': float(data['weight_kg']) if data.get('weight_kg') is not None else None,
        }
        return {key: value for key, value in screening.items() if value is not None}
