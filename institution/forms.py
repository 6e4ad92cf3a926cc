from django import forms

from blood.constants import INSTITUTION_TYPE_CHOICES

from .services.geocoding import reverse_lookup, search_address


class LoginForm(forms.Form):
    email = forms.EmailField(widget=forms.EmailInput(attrs={'class': 'form-control', 'autocomplete': 'email'}))
    password = forms.CharField(widget=forms.PasswordInput(attrs={'class': 'form-control'}))


class RegisterForm(forms.Form):
    institution_type = forms.ChoiceField(choices=INSTITUTION_TYPE_CHOICES, widget=forms.Select(attrs={'class': 'form-control'}))
    institution_name = forms.CharField(
        min_length=3,
        max_length=200,
        error_messages={'min_length': 'Institution name must be at least 3 characters.'},
        widget=forms.TextInput(attrs={'class': 'form-control'}),
    )
    email = forms.EmailField(widget=forms.EmailInput(attrs={'class': 'form-control'}))
    password = forms.CharField(
        min_length=6,
        error_messages={'min_length': 'Password must be at least 6 characters.'},
        widget=forms.PasswordInput(attrs={'class': 'form-control'}),
    )
    phone_number = forms.CharField(required=False, max_length=20, widget=forms.TextInput(attrs={'class': 'form-control'}))
    address = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))
    location_query = forms.CharField(
        required=False,
        label='Search location',
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Jl. Kramat Raya No. 47, Jakarta Pusat'}),
    )
    latitude = forms.DecimalField(required=False, max_digits=9, decimal_places=6, min_value=-90, max_value=90, widget=forms.HiddenInput())
    longitude = forms.DecimalField(required=False, max_digits=9, decimal_places=6, min_value=-180, max_value=180, widget=forms.HiddenInput())

    def clean(self):
        cleaned = super().clean()
        latitude = cleaned.get('latitude')
        longitude = cleaned.get('longitude')

        if (latitude is None) ^ (longitude is None):
            raise forms.ValidationError('Please provide both latitude and longitude or leave both blank.')

        if latitude is None and cleaned.get('location_query'):
            matches = search_address(cleaned['location_query'], limit=1)
            if matches:
                latitude, longitude = matches[0].latitude, matches[0].longitude
                cleaned['latitude'], cleaned['longitude'] = latitude, longitude
                if not (cleaned.get('address') or '').strip():
                    cleaned['address'] = matches[0].display_name

        if latitude is None:
            raise forms.ValidationError("Please pick your institution's location on the map.")

        address = (cleaned.get('address') or '').strip()
        if len(address) < 10:
            found = reverse_lookup(latitude, longitude)
            if found and found.display_name:
                address = found.display_name
        if len(address) < 10:
            self.add_error('address', 'Address must be at least 10 characters.')
        cleaned['address'] = address
        return cleaned
