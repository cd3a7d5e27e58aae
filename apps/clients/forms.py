# apps/clients/forms.py
from apps.clients.repositories import ClientRepository
from apps.clients.serializers import ClientSerializer
from apps.core.wizard import FormDefinition, FormStep, bind_repository, email_format, required, required_if
from apps.users.roles import CLIENT_MANAGEMENT

save_client, load_client = bind_repository(ClientRepository, ClientSerializer)

CLIENT_FORM = FormDefinition(
    name='client',
    screen=CLIENT_MANAGEMENT,
    steps=[
        FormStep(
            'Personal details',
            fields=('name', 'familyName', 'dob', 'number', 'whatsappNumber', 'email',
                    'birthCity', 'maritalStatus', 'spouseName'),
            validators=(
                required('name', 'familyName', 'dob', 'number'),
                required_if('spouseName', 'maritalStatus', 'Yes'),
                email_format('email'),
            ),
        ),
        FormStep(
            'Documents and address',
            fields=('panCard', 'aadhaarCard', 'passportNumber', 'voterNumber', 'canteenCardNumber',
                    'address', 'city', 'state', 'location', 'area'),
        ),
    ],
    save=save_client,
    load=load_client,
)
