"""Forms validating the manual override surface.

Editors create links and exclusion rules by hand; these forms keep bad input
from ever reaching the link store.
"""

from __future__ import annotations

from django import forms

from cms.models import ContentKind

from .models import ExclusionRule, ExclusionType


class ManualLinkForm(forms.Form):
    """A link an editor wants from one content item to another."""

    source_id = forms.CharField(max_length=64)
    source_type = forms.ChoiceField(choices=ContentKind.choices)
    target_id = forms.CharField(max_length=64)
    target_type = forms.ChoiceField(choices=ContentKind.choices)
    anchor_text = forms.CharField(
        max_length=300,
        min_length=4,
        help_text='Visible text of the link; must appear in the source body to be applied.',
    )

    def clean_anchor_text(self) -> str:
        return ' '.join(self.cleaned_data['anchor_text'].split())

    def clean(self) -> dict[str, str]:  # type: ignore[override]
        cleaned_data = super().clean()
        source_id = cleaned_data.get('source_id')
        target_id = cleaned_data.get('target_id')
        if source_id and target_id and source_id.strip() == target_id.strip():
            raise forms.ValidationError('A content item cannot link to itself.')
        return cleaned_data


class ExclusionRuleForm(forms.ModelForm):
    """Suppression rule; which fields are required depends on the rule type."""

    REQUIRED_FIELDS = {
        ExclusionType.PHRASE: ('phrase',),
        ExclusionType.TARGET: ('target_id',),
        ExclusionType.SOURCE: ('source_id',),
        ExclusionType.PAIR: ('source_id', 'target_id'),
    }

    class Meta:
        model = ExclusionRule
        fields = ('rule_type', 'phrase', 'source_id', 'target_id', 'reason')

    def clean_phrase(self) -> str:
        return ' '.join((self.cleaned_data.get('phrase') or '').split()).lower()

    def clean(self) -> dict[str, str]:  # type: ignore[override]
        cleaned_data = super().clean()
        rule_type = cleaned_data.get('rule_type')
        for field in self.REQUIRED_FIELDS.get(rule_type, ()):
            if not (cleaned_data.get(field) or '').strip():
                self.add_error(field, f'This field is required for {rule_type.lower()} rules.')
        if rule_type == ExclusionType.PAIR:
            source_id = (cleaned_data.get('source_id') or '').strip()
            if source_id and source_id == (cleaned_data.get('target_id') or '').strip():
                raise forms.ValidationError('A pair rule needs two different content items.')
        return cleaned_data
