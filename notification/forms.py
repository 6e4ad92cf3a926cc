from django import forms

FILTER_CHOICES = [
    ('all', 'All'),
    ('unread', 'Unread'),
]


class NotificationFilterForm(forms.Form):
    filter = forms.ChoiceField(choices=FILTER_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-control'}))
    q = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Search notifications'}))

    def apply(self, notifications):
        if not self.is_valid():
            return list(notifications)
        rows = list(notifications)
        if self.cleaned_data.get('filter') == 'unread':
            rows = [item for item in rows if not item.is_read]
        query = (self.cleaned_data.get('q') or '').strip().lower()
        if query:
            rows = [item for item in rows if query in item.title.lower() or query in item.message.lower()]
        return rows
