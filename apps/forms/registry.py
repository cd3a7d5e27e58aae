# apps/forms/registry.py
from apps.clients.forms import CLIENT_FORM
from apps.core.exceptions import DocumentNotFoundError
from apps.entries.forms import (
    FD_FORM,
    INSURANCE_FORM,
    MEDICLAIM_FAMILY_FORM,
    MEDICLAIM_SINGLE_FORM,
    POSTAL_FORM,
)

FORMS = {
    definition.name: definition
    for definition in (
        CLIENT_FORM,
        FD_FORM,
        INSURANCE_FORM,
        POSTAL_FORM,
        MEDICLAIM_SINGLE_FORM,
        MEDICLAIM_FAMILY_FORM,
    )
}


def get_form_definition(name):
    try:
        return FORMS[name]
    except KeyError:
        raise DocumentNotFoundError({'message': f'Unknown form "{name}".'})
