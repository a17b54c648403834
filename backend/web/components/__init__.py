# FreightWise component system
# Pure Python components for server-rendered HTML

from .base import Component, LocalizedComponent, flash_html
from .layout import Layout
from .navigation import Navigation, visible_entries
from .tables import AnnouncementList, PriceTable, RfqTable, UserTable
from .forms import (
    AnnouncementForm,
    LoginForm,
    PriceCreateForm,
    PriceImportForm,
    PriceSearchForm,
    RfqForm,
    UserCreateForm,
)

__all__ = [
    "Component",
    "LocalizedComponent",
    "flash_html",
    "Layout",
    "Navigation",
    "visible_entries",
    "AnnouncementList",
    "PriceTable",
    "RfqTable",
    "UserTable",
    "AnnouncementForm",
    "LoginForm",
    "PriceCreateForm",
    "PriceImportForm",
    "PriceSearchForm",
    "RfqForm",
    "UserCreateForm",
]
