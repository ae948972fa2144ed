"""Investor Profile step 1: account registration and type of account.

The account type decides which follow-up questions are active: a trust
asks for its establishment date and trust type, a custodial account for
UGMA/UTMA and gift entries, a joint tenancy for its tenancy details, and
so on. Older documents stored the registration values at the root; they
are lifted into accountRegistration on read.
"""

from __future__ import annotations

from typing import Any, Dict, List

from validation.field_rules import (
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    is_plain_object,
    is_valid_iso_date,
    normalize_nullable_string,
    normalize_required_string,
    parse_integer,
    single_selection,
    validate_single_choice,
)

from ..field_schema import YES_NO, Integer, ListOf, NullableText, Options, Text
from ..forms import FormType
from ..prefill import requires_step4_extras
from ..step_engine import Question, StepContext, StepDefinition

PRIMARY_TYPE_KEYS = (
    "individual",
    "corporation",
    "corporatePensionProfitSharing",
    "custodial",
    "estate",
    "jointTenant",
    "limitedLiabilityCompany",
    "individualSingleMemberLlc",
    "soleProprietorship",
    "transferOnDeathIndividual",
    "transferOnDeathJoint",
    "trust",
    "nonprofitOrganization",
    "partnership",
    "exemptOrganization",
    "other",
)
RETAIL_RETIREMENT_KEYS = ("retail", "retirement")
CORPORATION_DESIGNATION_KEYS = ("cCorp", "sCorp")
LLC_DESIGNATION_KEYS = ("cCorp", "sCorp", "partnership")
TRUST_TYPE_KEYS = (
    "charitable",
    "living",
    "irrevocableLiving",
    "family",
    "revocable",
    "irrevocable",
    "testamentary",
)
CUSTODIAL_TYPE_KEYS = ("ugma", "utma")
TENANCY_CLAUSE_KEYS = (
    "communityProperty",
    "tenantsByEntirety",
    "communityPropertyWithRightsOfSurvivorship",
    "jointTenantsWithRightsOfSurvivorship",
    "tenantsInCommon",
)

GIFT_SCHEMA = {"state": Text(), "dateGiftWasGiven": Text()}

SCHEMA = {
    "accountRegistration": {
        "rrName": Text(),
        "rrNo": Text(),
        "customerNames": Text(),
        "accountNo": Text(),
        "retailRetirement": Options(RETAIL_RETIREMENT_KEYS),
    },
    "typeOfAccount": {
        "primaryType": Options(PRIMARY_TYPE_KEYS),
        "corporationDesignation": Options(CORPORATION_DESIGNATION_KEYS),
        "llcDesignation": Options(LLC_DESIGNATION_KEYS),
        "trust": {
            "establishmentDate": NullableText(),
            "trustType": Options(TRUST_TYPE_KEYS),
        },
        "custodial": {
            "custodialType": Options(CUSTODIAL_TYPE_KEYS),
            "gifts": ListOf(GIFT_SCHEMA),
        },
        "joint": {
            "marriedToEachOther": Options(YES_NO),
            "tenancyState": NullableText(),
            "numberOfTenants": Integer(minimum=1),
            "tenancyClause": Options(TENANCY_CLAUSE_KEYS),
        },
        "transferOnDeath": {
            "individualAgreementDate": NullableText(),
            "jointAgreementDate": NullableText(),
        },
        "otherDescription": NullableText(),
    },
}

LEGACY_REGISTRATION_KEYS = ("rrName", "rrNo", "customerNames", "accountNo")


def upgrade_legacy_document(raw: Any) -> Any:
    """Move root-level registration values into accountRegistration."""
    if not isinstance(raw, dict):
        return raw

    registration = dict(raw.get("accountRegistration") or {}) if is_plain_object(raw.get("accountRegistration")) else {}
    for key in LEGACY_REGISTRATION_KEYS:
        if normalize_nullable_string(registration.get(key)) is None and normalize_nullable_string(raw.get(key)):
            registration[key] = raw[key]

    retail_retirement = create_boolean_map(RETAIL_RETIREMENT_KEYS, registration.get("retailRetirement"))
    if count_true(retail_retirement) == 0:
        legacy = create_boolean_map(RETAIL_RETIREMENT_KEYS, raw.get("accountType"))
        if count_true(legacy) > 0:
            registration["retailRetirement"] = legacy

    return {**raw, "accountRegistration": registration}


# =============================================================================
# VISIBILITY
# =============================================================================

BASE_QUESTION_IDS = [
    "rrName",
    "rrNo",
    "customerNames",
    "accountNo",
    "accountRegistration.retailRetirement",
    "typeOfAccount.primaryType",
]

FOLLOW_UP_QUESTION_IDS = {
    "corporation": ["typeOfAccount.corporationDesignation"],
    "limitedLiabilityCompany": ["typeOfAccount.llcDesignation"],
    "trust": ["typeOfAccount.trust.establishmentDate", "typeOfAccount.trust.trustType"],
    "custodial": ["typeOfAccount.custodial.custodialType", "typeOfAccount.custodial.gifts"],
    "jointTenant": [
        "typeOfAccount.joint.marriedToEachOther",
        "typeOfAccount.joint.tenancyState",
        "typeOfAccount.joint.numberOfTenants",
        "typeOfAccount.joint.tenancyClause",
    ],
    "transferOnDeathIndividual": ["typeOfAccount.transferOnDeath.individualAgreementDate"],
    "transferOnDeathJoint": ["typeOfAccount.transferOnDeath.jointAgreementDate"],
    "other": ["typeOfAccount.otherDescription"],
}


def visible_question_ids(fields: Dict[str, Any], context: StepContext) -> List[str]:
    primary_type = single_selection(fields["typeOfAccount"]["primaryType"])
    return BASE_QUESTION_IDS + FOLLOW_UP_QUESTION_IDS.get(primary_type, [])


# =============================================================================
# ANSWER VALIDATORS
# =============================================================================

def required_string(key: str, label: str):

    def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        value = normalize_required_string(answer)
        if not value:
            return ValidationResult.failed({key: f"{label} is required."})
        return ValidationResult.ok(value)

    return validate


def required_date(key: str, label: str):

    def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        value = normalize_required_string(answer)
        if not value:
            return ValidationResult.failed({key: f"{label} is required."})
        if not is_valid_iso_date(value):
            return ValidationResult.failed({key: f"Enter a valid {label.lower()} in YYYY-MM-DD format."})
        return ValidationResult.ok(value)

    return validate


def single_choice(key: str, keys):

    def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        errors: FieldErrors = {}
        value = validate_single_choice(
            errors, key, answer, keys, "Please choose one option.", "Please choose exactly one option."
        )
        return ValidationResult.from_errors(errors, value)

    return validate


GIFTS_KEY = "typeOfAccount.custodial.gifts"


def validate_gifts(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    if not isinstance(answer, list):
        return ValidationResult.failed({GIFTS_KEY: "Add at least one custodial gift entry."})

    gifts = [
        {
            "state": normalize_required_string(entry.get("state")),
            "dateGiftWasGiven": normalize_required_string(entry.get("dateGiftWasGiven")),
        }
        for entry in answer
        if isinstance(entry, dict)
    ]
    gifts = [gift for gift in gifts if gift["state"] or gift["dateGiftWasGiven"]]
    if not gifts:
        return ValidationResult.failed({GIFTS_KEY: "Add at least one custodial gift entry."})

    errors: FieldErrors = {}
    for index, gift in enumerate(gifts):
        if not gift["state"]:
            errors[f"{GIFTS_KEY}.{index}.state"] = "State is required."
        if not gift["dateGiftWasGiven"]:
            errors[f"{GIFTS_KEY}.{index}.dateGiftWasGiven"] = "Date gift was given is required."
        elif not is_valid_iso_date(gift["dateGiftWasGiven"]):
            errors[f"{GIFTS_KEY}.{index}.dateGiftWasGiven"] = "Use YYYY-MM-DD format."
    return ValidationResult.from_errors(errors, gifts)


def validate_number_of_tenants(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    value = parse_integer(answer)
    if value is None or value < 2:
        return ValidationResult.failed({
            "typeOfAccount.joint.numberOfTenants": "Enter a valid number of tenants (2 or more).",
        })
    return ValidationResult.ok(value)


QUESTIONS = [
    Question("rrName", "accountRegistration.rrName", required_string("rrName", "RR Name")),
    Question("rrNo", "accountRegistration.rrNo", required_string("rrNo", "RR No.")),
    Question("customerNames", "accountRegistration.customerNames", required_string("customerNames", "Customer Name(s)")),
    Question("accountNo", "accountRegistration.accountNo", required_string("accountNo", "Account No.")),
    Question(
        "accountRegistration.retailRetirement",
        "accountRegistration.retailRetirement",
        single_choice("accountRegistration.retailRetirement", RETAIL_RETIREMENT_KEYS),
    ),
    Question(
        "typeOfAccount.primaryType",
        "typeOfAccount.primaryType",
        single_choice("typeOfAccount.primaryType", PRIMARY_TYPE_KEYS),
    ),
    Question(
        "typeOfAccount.corporationDesignation",
        "typeOfAccount.corporationDesignation",
        single_choice("typeOfAccount.corporationDesignation", CORPORATION_DESIGNATION_KEYS),
    ),
    Question(
        "typeOfAccount.llcDesignation",
        "typeOfAccount.llcDesignation",
        single_choice("typeOfAccount.llcDesignation", LLC_DESIGNATION_KEYS),
    ),
    Question(
        "typeOfAccount.trust.establishmentDate",
        "typeOfAccount.trust.establishmentDate",
        required_date("typeOfAccount.trust.establishmentDate", "Trust establishment date"),
    ),
    Question(
        "typeOfAccount.trust.trustType",
        "typeOfAccount.trust.trustType",
        single_choice("typeOfAccount.trust.trustType", TRUST_TYPE_KEYS),
    ),
    Question(
        "typeOfAccount.custodial.custodialType",
        "typeOfAccount.custodial.custodialType",
        single_choice("typeOfAccount.custodial.custodialType", CUSTODIAL_TYPE_KEYS),
    ),
    Question(GIFTS_KEY, GIFTS_KEY, validate_gifts),
    Question(
        "typeOfAccount.joint.marriedToEachOther",
        "typeOfAccount.joint.marriedToEachOther",
        single_choice("typeOfAccount.joint.marriedToEachOther", YES_NO),
    ),
    Question(
        "typeOfAccount.joint.tenancyState",
        "typeOfAccount.joint.tenancyState",
        required_string("typeOfAccount.joint.tenancyState", "Tenancy state"),
    ),
    Question(
        "typeOfAccount.joint.numberOfTenants",
        "typeOfAccount.joint.numberOfTenants",
        validate_number_of_tenants,
    ),
    Question(
        "typeOfAccount.joint.tenancyClause",
        "typeOfAccount.joint.tenancyClause",
        single_choice("typeOfAccount.joint.tenancyClause", TENANCY_CLAUSE_KEYS),
    ),
    Question(
        "typeOfAccount.transferOnDeath.individualAgreementDate",
        "typeOfAccount.transferOnDeath.individualAgreementDate",
        required_date("typeOfAccount.transferOnDeath.individualAgreementDate", "Agreement date"),
    ),
    Question(
        "typeOfAccount.transferOnDeath.jointAgreementDate",
        "typeOfAccount.transferOnDeath.jointAgreementDate",
        required_date("typeOfAccount.transferOnDeath.jointAgreementDate", "Agreement date"),
    ),
    Question(
        "typeOfAccount.otherDescription",
        "typeOfAccount.otherDescription",
        required_string("typeOfAccount.otherDescription", "Other account type description"),
    ),
]


# =============================================================================
# COMPLETION
# =============================================================================

def _check_date(errors: FieldErrors, key: str, value: Any, missing_message: str) -> None:
    if not value:
        errors[key] = missing_message
    elif not is_valid_iso_date(value):
        errors[key] = "Use YYYY-MM-DD format."


def completion_errors(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    registration = fields["accountRegistration"]
    account = fields["typeOfAccount"]
    errors: FieldErrors = {}

    for key, label in (
        ("rrName", "RR Name"),
        ("rrNo", "RR No."),
        ("customerNames", "Customer Name(s)"),
        ("accountNo", "Account No."),
    ):
        if not registration[key].strip():
            errors[key] = f"{label} is required."

    if count_true(registration["retailRetirement"]) != 1:
        errors["accountRegistration.retailRetirement"] = "Choose Retirement or Retail."

    primary_type = single_selection(account["primaryType"])
    if primary_type is None:
        errors["typeOfAccount.primaryType"] = "Select one account type."
        return errors

    if primary_type == "corporation" and count_true(account["corporationDesignation"]) != 1:
        errors["typeOfAccount.corporationDesignation"] = "Select one corporation designation."

    if primary_type == "limitedLiabilityCompany" and count_true(account["llcDesignation"]) != 1:
        errors["typeOfAccount.llcDesignation"] = "Select one LLC designation."

    if primary_type == "trust":
        _check_date(
            errors,
            "typeOfAccount.trust.establishmentDate",
            account["trust"]["establishmentDate"],
            "Trust establishment date is required.",
        )
        if count_true(account["trust"]["trustType"]) != 1:
            errors["typeOfAccount.trust.trustType"] = "Select one trust type."

    if primary_type == "custodial":
        custodial = account["custodial"]
        if count_true(custodial["custodialType"]) != 1:
            errors["typeOfAccount.custodial.custodialType"] = "Select UGMA or UTMA."
        if not custodial["gifts"]:
            errors[GIFTS_KEY] = "Add at least one custodial gift entry."
        for index, gift in enumerate(custodial["gifts"]):
            if not gift["state"]:
                errors[f"{GIFTS_KEY}.{index}.state"] = "State is required."
            _check_date(errors, f"{GIFTS_KEY}.{index}.dateGiftWasGiven", gift["dateGiftWasGiven"], "Date is required.")

    if primary_type == "jointTenant":
        joint = account["joint"]
        if count_true(joint["marriedToEachOther"]) != 1:
            errors["typeOfAccount.joint.marriedToEachOther"] = "Choose Yes or No."
        if not joint["tenancyState"]:
            errors["typeOfAccount.joint.tenancyState"] = "Tenancy state is required."
        if joint["numberOfTenants"] is None or joint["numberOfTenants"] < 2:
            errors["typeOfAccount.joint.numberOfTenants"] = "Enter number of tenants (2 or more)."
        if count_true(joint["tenancyClause"]) != 1:
            errors["typeOfAccount.joint.tenancyClause"] = "Select one tenancy clause."

    if primary_type == "transferOnDeathIndividual":
        _check_date(
            errors,
            "typeOfAccount.transferOnDeath.individualAgreementDate",
            account["transferOnDeath"]["individualAgreementDate"],
            "Agreement date is required.",
        )

    if primary_type == "transferOnDeathJoint":
        _check_date(
            errors,
            "typeOfAccount.transferOnDeath.jointAgreementDate",
            account["transferOnDeath"]["jointAgreementDate"],
            "Agreement date is required.",
        )

    if primary_type == "other" and not account["otherDescription"]:
        errors["typeOfAccount.otherDescription"] = "Please describe this account type."

    return errors


DEFINITION = StepDefinition(
    form_type=FormType.INVESTOR_PROFILE,
    number=1,
    schema=SCHEMA,
    questions=QUESTIONS,
    visible=visible_question_ids,
    completion=completion_errors,
    upgrade=upgrade_legacy_document,
    extras=requires_step4_extras,
)
