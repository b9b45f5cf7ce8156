"""Django Inbox forms.

Accept either parsed JSON bodies or form-encoded data; JSON-valued fields
(product, images) may arrive as decoded objects or JSON strings.
"""
from django import forms
from django.utils.translation import gettext_lazy as _


class SendMessageForm(forms.Form):
    """Input for sending a message, from either side of the inbox."""

    message = forms.CharField(required=False, max_length=5000, strip=True)
    product = forms.JSONField(required=False)
    images = forms.JSONField(required=False)
    is_quick_option = forms.BooleanField(required=False)
    receiver_id = forms.IntegerField(required=False, min_value=1)
    customer_id = forms.IntegerField(required=False, min_value=1)
    conversation_id = forms.IntegerField(required=False, min_value=1)

    def clean_product(self):
        product = self.cleaned_data.get('product')
        if product in (None, '', {}):
            return None
        if not isinstance(product, dict):
            raise forms.ValidationError(_('Product must be an object.'))
        return product

    def clean_images(self):
        images = self.cleaned_data.get('images')
        if images in (None, '', []):
            return []
        if not isinstance(images, list) or not all(isinstance(i, str) and i for i in images):
            raise forms.ValidationError(_('Images must be a list of URLs.'))
        return images

    def clean(self):
        cleaned_data = super().clean()
        if self.errors:
            return cleaned_data
        if not (cleaned_data.get('message') or cleaned_data.get('product') or cleaned_data.get('images')):
            raise forms.ValidationError(
                _('A message needs text, a product or at least one image.'),
                code='empty',
            )
        return cleaned_data


class MessageListForm(forms.Form):
    """Cursor paging parameters."""

    before_id = forms.IntegerField(required=False, min_value=1)
    after_id = forms.IntegerField(required=False, min_value=0)
    limit = forms.IntegerField(required=False, min_value=1)
    customer_id = forms.IntegerField(required=False, min_value=1)
    conversation_id = forms.IntegerField(required=False, min_value=1)

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('before_id') is not None and cleaned_data.get('after_id') is not None:
            raise forms.ValidationError(_('Use before_id or after_id, not both.'))
        return cleaned_data


class StaffMessageListForm(MessageListForm):
    def clean(self):
        cleaned_data = super().clean()
        if not (cleaned_data.get('customer_id') or cleaned_data.get('conversation_id')):
            self.add_error('customer_id', _('A customer or conversation is required.'))
        return cleaned_data


class TypingForm(forms.Form):
    conversation_id = forms.IntegerField(min_value=1)


class LimitForm(forms.Form):
    limit = forms.IntegerField(required=False, min_value=1)


class ChannelAuthForm(forms.Form):
    channel_name = forms.CharField(max_length=200)
