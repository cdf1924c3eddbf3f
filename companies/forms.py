from django import forms


class PersonalFieldsForm(forms.Form):
    """Partial update form: every field is optional, blanks are ignored downstream."""
    company_name = forms.CharField(max_length=255, required=False)
    full_name = forms.CharField(max_length=255, required=False)
    national_id = forms.CharField(max_length=20, required=False)
    phone = forms.CharField(max_length=20, required=False)
    birth_date = forms.DateField(required=False)
    address = forms.CharField(max_length=500, required=False)
    commercial_registry = forms.CharField(max_length=50, required=False)

    def changed_values(self):
        """Only the keys that were actually submitted."""
        return {name: value for name, value in self.cleaned_data.items() if name in self.data}
