# apps/entries/forms.py
"""
Multi-step form definitions of the entry screens.
"""
from apps.core.wizard import (
    FormDefinition,
    FormStep,
    at_least_one,
    bind_repository,
    email_format,
    numeric,
    required,
    required_if,
)
from apps.entries.repositories import (
    FDEntryRepository,
    InsuranceRepository,
    MediclaimRepository,
    PostalEntryRepository,
)
from apps.entries.serializers import (
    FDEntrySerializer,
    InsuranceSerializer,
    MEDICLAIM_FAMILY,
    MEDICLAIM_SINGLE,
    MediclaimSerializer,
    PostalEntrySerializer,
)
from apps.users import roles


def mediclaim_hooks(entry_type):
    """
    Form fields are the policy payload plus an optional clientId; the stored
    entry wraps the payload as {type, clientId, data}.
    """
    save_entry, load_entry = bind_repository(MediclaimRepository, MediclaimSerializer)

    def save(fields, edit_target_id):
        payload = {key: value for key, value in fields.items() if key != 'clientId'}
        return save_entry({
            'type': entry_type,
            'clientId': fields.get('clientId') or '',
            'data': payload,
        }, edit_target_id)

    def load(record_id):
        record = load_entry(record_id)
        if record is None or record.get('type') != entry_type:
            return None
        return {**(record.get('data') or {}), 'clientId': record.get('clientId', '')}

    return save, load


save_fd, load_fd = bind_repository(FDEntryRepository, FDEntrySerializer)

FD_FORM = FormDefinition(
    name='fd',
    screen=roles.FD_ENTRY,
    steps=[
        FormStep(
            'Deposit',
            fields=('clientId', 'secondClientId', 'product', 'depositDate', 'amountDeposited',
                    'maturityDate', 'interestRate'),
            validators=(
                at_least_one('clientId', 'secondClientId', message='Select at least one client.'),
                required('product', 'depositDate', 'amountDeposited', 'maturityDate', 'interestRate'),
                numeric('amountDeposited', 'interestRate'),
            ),
        ),
        FormStep('Nominees', fields=('nominee1', 'nominee2', 'cifId')),
        FormStep('Cheque', fields=('chequeNumber', 'chequeDate', 'bankName')),
    ],
    save=save_fd,
    load=load_fd,
)


INSURANCE_STEPS = [
    ('Policy', ('clientId', 'product', 'policyDate', 'sumAssured', 'maturityDate')),
    ('Plan', ('plan', 'terms', 'premiumMode', 'premiumAmount')),
    ('Nominee', ('nomineeName', 'nomineeDOB', 'nomineeAddress')),
    ('Payment', ('chequeNumber', 'chequeDate', 'bankName')),
]

save_insurance, load_insurance = bind_repository(InsuranceRepository, InsuranceSerializer)

INSURANCE_FORM = FormDefinition(
    name='insurance',
    screen=roles.INSURANCE_ENTRY,
    steps=[
        FormStep(title, fields=fields, validators=(required(*fields), numeric('sumAssured', 'premiumAmount')))
        for title, fields in INSURANCE_STEPS
    ],
    save=save_insurance,
    load=load_insurance,
)


save_postal, load_postal = bind_repository(PostalEntryRepository, PostalEntrySerializer)

POSTAL_FORM = FormDefinition(
    name='postal',
    screen=roles.POSTAL_ENTRY,
    steps=[
        FormStep(
            'Deposit',
            fields=('clientId', 'secondClientId', 'product', 'subProduct', 'depositDate', 'amount',
                    'maturityDate', 'interestRate'),
            validators=(numeric('amount', 'interestRate'),),
        ),
        FormStep(
            'Nominee',
            fields=('nomineeName', 'nomineeDob', 'nomineeRelation', 'isNomineeMinor', 'nomineeGuardianName'),
            validators=(required_if('nomineeGuardianName', 'isNomineeMinor'),),
        ),
        FormStep('Cheque', fields=('chequeNo', 'chequeDate', 'bankName')),
        FormStep('Post office', fields=('postOfficeName', 'agentCode', 'remark', 'cifId1', 'cifId2')),
    ],
    save=save_postal,
    load=load_postal,
)


save_single, load_single = mediclaim_hooks(MEDICLAIM_SINGLE)

MEDICLAIM_SINGLE_FORM = FormDefinition(
    name='mediclaim-single',
    screen=roles.MEDICLAIM_ENTRY,
    steps=[
        FormStep(
            'Personal details',
            fields=('clientId', 'fullName', 'dob', 'gender', 'contactNumber', 'email', 'address',
                    'occupation', 'annualIncome'),
            validators=(required('fullName', 'dob'), email_format('email'), numeric('annualIncome')),
        ),
        FormStep('Policy details', fields=('policyDetails',)),
        FormStep('Payment', fields=('paymentInfo',)),
    ],
    save=save_single,
    load=load_single,
)


save_family, load_family = mediclaim_hooks(MEDICLAIM_FAMILY)

MEDICLAIM_FAMILY_FORM = FormDefinition(
    name='mediclaim-family',
    screen=roles.MEDICLAIM_ENTRY,
    steps=[
        FormStep(
            'Policyholder',
            fields=('clientId', 'policyholderName', 'gender', 'dob', 'age', 'occupation', 'contactDetails'),
            validators=(required('policyholderName', 'dob'), email_format('contactDetails.email')),
        ),
        FormStep('Family members', fields=('familyMembers',)),
        FormStep('Payment', fields=('paymentInfo',)),
    ],
    save=save_family,
    load=load_family,
)
