# apps/entries/serializers.py
from rest_framework import serializers

from apps.clients.serializers import ClientReferenceField
from apps.core.serializers import IsoDateField, OptionalFloatField, StrippedCharField

PREMIUM_MODE_CHOICES = ['Monthly', 'Quarterly', 'Yearly']
GENDER_CHOICES = ['Male', 'Female', 'Other']
POLICY_TYPE_CHOICES = ['Individual', 'Family Floater']
PAYMENT_MODE_CHOICES = ['Online', 'Offline']
PAYMENT_FREQUENCY_CHOICES = ['Annual', 'Monthly', 'Quarterly']
MEDICLAIM_SINGLE = 'Single'
MEDICLAIM_FAMILY = 'Family'


def optional_date():
    return IsoDateField(required=False, allow_blank=True)


def optional_choice(choices):
    return serializers.ChoiceField(choices=choices, required=False, allow_blank=True)


class FDEntrySerializer(serializers.Serializer):
    clientId = ClientReferenceField(required=False, allow_blank=True)
    secondClientId = ClientReferenceField(required=False, allow_blank=True)
    product = serializers.CharField(max_length=150)
    depositDate = IsoDateField()
    amountDeposited = serializers.FloatField(min_value=0)
    maturityDate = IsoDateField()
    interestRate = serializers.FloatField(min_value=0)
    nominee1 = StrippedCharField(max_length=150)
    nominee2 = StrippedCharField(max_length=150)
    cifId = StrippedCharField(max_length=50)
    chequeNumber = StrippedCharField(max_length=50)
    chequeDate = optional_date()
    bankName = StrippedCharField(max_length=150)

    def validate(self, attrs):
        merged = {**(self.context.get('existing') or {}), **attrs}
        if not (merged.get('clientId') or merged.get('secondClientId')):
            raise serializers.ValidationError({'clientId': ['Select at least one client.']})
        return attrs


class InsuranceSerializer(serializers.Serializer):
    clientId = ClientReferenceField()
    product = serializers.CharField(max_length=150)
    policyDate = IsoDateField()
    sumAssured = serializers.FloatField(min_value=0)
    maturityDate = IsoDateField()
    plan = serializers.CharField(max_length=150)
    terms = serializers.CharField(max_length=50)
    premiumMode = serializers.ChoiceField(choices=PREMIUM_MODE_CHOICES)
    premiumAmount = serializers.FloatField(min_value=0)
    nomineeName = serializers.CharField(max_length=150)
    nomineeDOB = IsoDateField()
    nomineeAddress = serializers.CharField()
    chequeNumber = serializers.CharField(max_length=50)
    chequeDate = IsoDateField()
    bankName = serializers.CharField(max_length=150)


class PostalEntrySerializer(serializers.Serializer):
    clientId = ClientReferenceField(required=False, allow_blank=True)
    secondClientId = ClientReferenceField(required=False, allow_blank=True)
    product = StrippedCharField(max_length=150)
    subProduct = StrippedCharField(max_length=150)
    depositDate = optional_date()
    amount = OptionalFloatField(min_value=0)
    maturityDate = optional_date()
    interestRate = OptionalFloatField(min_value=0)
    nomineeName = StrippedCharField(max_length=150)
    nomineeDob = optional_date()
    nomineeRelation = StrippedCharField(max_length=50)
    isNomineeMinor = serializers.BooleanField(required=False)
    nomineeGuardianName = StrippedCharField(max_length=150)
    chequeNo = StrippedCharField(max_length=50)
    chequeDate = optional_date()
    bankName = StrippedCharField(max_length=150)
    postOfficeName = StrippedCharField(max_length=150)
    agentCode = StrippedCharField(max_length=50)
    remark = StrippedCharField()
    cifId1 = StrippedCharField(max_length=50)
    cifId2 = StrippedCharField(max_length=50)

    def validate(self, attrs):
        existing = self.context.get('existing')
        if existing is None:
            attrs.setdefault('isNomineeMinor', False)
        merged = {**(existing or {}), **attrs}
        if merged.get('isNomineeMinor') and not (merged.get('nomineeGuardianName') or '').strip():
            raise serializers.ValidationError({'nomineeGuardianName': ['Guardian name is required for a minor nominee.']})
        return attrs


class PhoneLogSerializer(serializers.Serializer):
    employeeId = serializers.CharField(max_length=50)
    employeeName = serializers.CharField(max_length=150)
    email = serializers.EmailField(required=False, allow_blank=True)
    phoneNumber = serializers.CharField(max_length=20)
    taskDescription = serializers.CharField()


class ChequeSerializer(serializers.Serializer):
    rdChequeEntry = serializers.CharField(max_length=100)
    chequeFrom = StrippedCharField(max_length=150)
    chequeTo = StrippedCharField(max_length=150)
    bankName = StrippedCharField(max_length=150)
    dueDate = IsoDateField()


class ExecutiveSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    employeeId = serializers.CharField(max_length=50)
    phoneNumber = StrippedCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    designation = StrippedCharField(max_length=100)
    leaveLeft = serializers.IntegerField(required=False, min_value=0)
    leaveUsed = serializers.IntegerField(required=False, min_value=0)
    salary = OptionalFloatField(min_value=0)


# Mediclaim payloads

class AddressSerializer(serializers.Serializer):
    street = StrippedCharField()
    city = StrippedCharField(max_length=100)
    state = StrippedCharField(max_length=100)
    zip = StrippedCharField(max_length=20)


class PolicyDetailsSerializer(serializers.Serializer):
    policyNumber = StrippedCharField(max_length=50)
    insuranceCompany = StrippedCharField(max_length=150)
    startDate = optional_date()
    expiryDate = optional_date()
    policyType = optional_choice(POLICY_TYPE_CHOICES)
    sumInsured = OptionalFloatField(min_value=0)


class BankDetailsSerializer(serializers.Serializer):
    accountHolder = StrippedCharField(max_length=150)
    accountNumber = StrippedCharField(max_length=50)
    bankName = StrippedCharField(max_length=150)
    branch = StrippedCharField(max_length=150)
    ifsc = StrippedCharField(max_length=20)


class PaymentInfoSerializer(serializers.Serializer):
    paymentMode = optional_choice(PAYMENT_MODE_CHOICES)
    paymentFrequency = optional_choice(PAYMENT_FREQUENCY_CHOICES)
    bankDetails = BankDetailsSerializer(required=False)


class ContactDetailsSerializer(serializers.Serializer):
    mobileNumber = StrippedCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    residentialAddress = StrippedCharField()
    pinCode = StrippedCharField(max_length=20)


class InsuredMemberSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=150)
    relationship = StrippedCharField(max_length=50)
    gender = optional_choice(GENDER_CHOICES)
    dob = optional_date()
    age = StrippedCharField(max_length=5)
    nomineeName = StrippedCharField(max_length=150)
    nomineeRelationship = StrippedCharField(max_length=50)


class SingleMediclaimSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=150)
    dob = IsoDateField()
    gender = optional_choice(GENDER_CHOICES)
    contactNumber = StrippedCharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = AddressSerializer(required=False)
    occupation = StrippedCharField(max_length=100)
    annualIncome = OptionalFloatField(min_value=0)
    policyDetails = PolicyDetailsSerializer(required=False)
    paymentInfo = PaymentInfoSerializer(required=False)


class FamilyMediclaimSerializer(serializers.Serializer):
    policyholderName = serializers.CharField(max_length=150)
    gender = optional_choice(GENDER_CHOICES)
    dob = IsoDateField()
    age = StrippedCharField(max_length=5)
    occupation = StrippedCharField(max_length=100)
    contactDetails = ContactDetailsSerializer(required=False)
    familyMembers = InsuredMemberSerializer(many=True, required=False)
    paymentInfo = PaymentInfoSerializer(required=False)


MEDICLAIM_PAYLOADS = {
    MEDICLAIM_SINGLE: SingleMediclaimSerializer,
    MEDICLAIM_FAMILY: FamilyMediclaimSerializer,
}


class MediclaimSerializer(serializers.Serializer):
    """
    Mediclaim entry: `type` picks the payload shape validated under `data`.
    The payload is always replaced as a whole.
    """
    type = serializers.ChoiceField(choices=list(MEDICLAIM_PAYLOADS))
    clientId = ClientReferenceField(required=False, allow_blank=True)
    data = serializers.DictField()

    def validate(self, attrs):
        existing = self.context.get('existing') or {}
        entry_type = attrs.get('type', existing.get('type'))
        if 'type' in attrs and 'data' not in attrs and entry_type != existing.get('type'):
            raise serializers.ValidationError({'data': ['Provide the policy details for the new type.']})
        if 'data' in attrs:
            payload = MEDICLAIM_PAYLOADS[entry_type](data=attrs['data'])
            if not payload.is_valid():
                raise serializers.ValidationError({'data': payload.errors})
            attrs['data'] = _plain(payload.validated_data)
        return attrs


def _plain(value):
    """Validated nested data as plain dicts / lists for the document store"""
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value
