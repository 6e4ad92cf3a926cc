from django import forms
from django.utils import timezone

from .constants import (
    BLOOD_GROUP_CHOICES,
    PICKUP_CODE_LENGTH,
    PICKUP_STATUS_FILTERS,
    STOCK_CHANGE_CHOICES,
    STOCK_HISTORY_ACTIONS,
    UNIT_TYPE_CHOICES,
    URGENCY_CHOICES,
)

BLOOD_GROUP_FILTER_CHOICES = [('', 'All blood types')] + BLOOD_GROUP_CHOICES


class RequestFilterForm(forms.Form):
    blood_type = forms.ChoiceField(choices=BLOOD_GROUP_FILTER_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    location = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Blood bank'}))
    date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))


class BloodRequestForm(forms.Form):
    partner_id = forms.ChoiceField(label='Blood bank', widget=forms.Select(attrs={'class': 'form-control'}))
    patient_name = forms.CharField(max_length=120, widget=forms.TextInput(attrs={'class': 'form-control'}))
    blood_type = forms.ChoiceField(choices=BLOOD_GROUP_CHOICES, widget=forms.Select(attrs={'class': 'form-control'}))
    quantity = forms.IntegerField(min_value=1, widget=forms.NumberInput(attrs={'class': 'form-control'}))
    unit_type = forms.ChoiceField(choices=UNIT_TYPE_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    urgency_level = forms.ChoiceField(choices=URGENCY_CHOICES, initial='medium', widget=forms.Select(attrs={'class': 'form-control'}))
    phone_number = forms.CharField(max_length=20, required=False, widget=forms.TextInput(attrs={'class': 'form-control'}))
    medical_condition = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def __init__(self, *args, partners=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['partner_id'].choices = [(partner.id, partner.name) for partner in partners]


class RejectRequestForm(forms.Form):
    rejection_reason = forms.CharField(widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    def clean_rejection_reason(self):
        reason = self.cleaned_data['rejection_reason'].strip()
        if not reason:
            raise forms.ValidationError('Please give a reason for rejecting this request.')
        return reason


class PickupScheduleForm(forms.Form):
    pickup_date = forms.DateField(widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    pickup_time = forms.TimeField(widget=forms.TimeInput(attrs={'class': 'form-control', 'type': 'time'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def clean_pickup_date(self):
        value = self.cleaned_data['pickup_date']
        if value < timezone.localdate():
            raise forms.ValidationError('Pickup date cannot be in the past.')
        return value


class CampaignForm(forms.Form):
    blood_request_id = forms.CharField(widget=forms.HiddenInput())
    patient_name = forms.CharField(widget=forms.HiddenInput())
    blood_type = forms.ChoiceField(choices=BLOOD_GROUP_CHOICES, widget=forms.HiddenInput())
    quantity = forms.IntegerField(min_value=1, widget=forms.HiddenInput())
    urgency_level = forms.CharField(required=False, widget=forms.HiddenInput())


class AllocationPickupForm(forms.Form):
    quantity_picked_up = forms.IntegerField(min_value=1, widget=forms.NumberInput(attrs={'class': 'form-control'}))


class AllocationCancelForm(forms.Form):
    reason = forms.CharField(widget=forms.TextInput(attrs={'class': 'form-control'}))


class PickupFilterForm(forms.Form):
    status = forms.ChoiceField(choices=PICKUP_STATUS_FILTERS, required=False, widget=forms.Select(attrs={'class': 'form-control'}))


class PickupCompleteForm(forms.Form):
    unique_code = forms.CharField(
        max_length=PICKUP_CODE_LENGTH,
        widget=forms.TextInput(attrs={'class': 'form-control text-uppercase', 'autocomplete': 'off'}),
    )

    def clean_unique_code(self):
        code = self.cleaned_data['unique_code'].strip().upper()
        if len(code) != PICKUP_CODE_LENGTH:
            raise forms.ValidationError(f'Pickup code must be exactly {PICKUP_CODE_LENGTH} characters.')
        return code


class StockAdjustForm(forms.Form):
    blood_type = forms.ChoiceField(choices=BLOOD_GROUP_CHOICES, widget=forms.Select(attrs={'class': 'form-control'}))
    change_type = forms.ChoiceField(choices=STOCK_CHANGE_CHOICES, widget=forms.Select(attrs={'class': 'form-control'}))
    quantity = forms.IntegerField(min_value=1, error_messages={'min_value': 'Amount must be greater than 0.'}, widget=forms.NumberInput(attrs={'class': 'form-control'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))


class StockHistoryFilterForm(forms.Form):
    action_type = forms.ChoiceField(choices=STOCK_HISTORY_ACTIONS, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    blood_type = forms.ChoiceField(choices=BLOOD_GROUP_FILTER_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    start_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    end_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start_date'), cleaned.get('end_date')
        if start and end and start > end:
            raise forms.ValidationError('Start date must be before end date.')
        return cleaned
