"""
Form components for FreightWise pages.
"""

from .fields import FormField, SelectField, SubmitButton, TextAreaField, TextInputField
from .announcement_form import AnnouncementForm
from .login_form import LoginForm
from .price_form import PriceCreateForm, PriceImportForm
from .rfq_form import RfqForm
from .search_form import PriceSearchForm
from .user_form import UserCreateForm

__all__ = [
    "FormField",
    "SelectField",
    "SubmitButton",
    "TextAreaField",
    "TextInputField",
    "AnnouncementForm",
    "LoginForm",
    "PriceCreateForm",
    "PriceImportForm",
    "RfqForm",
    "PriceSearchForm",
    "UserCreateForm",
]
