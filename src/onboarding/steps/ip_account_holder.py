"""Investor Profile steps 3 and 4: primary and secondary account holder.

Both steps share one question set; only the question id prefix and the
employment options differ (the secondary holder may be a homemaker).
Step 4 exists only for account types with a second party.

Questions hidden by earlier answers keep whatever value they last held;
visibility and completion simply stop looking at them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from validation.field_rules import (
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    current_utc_year,
    digits_only,
    is_minor,
    is_past_date,
    is_past_or_today,
    is_po_box,
    is_today_or_future,
    is_valid_country_code,
    is_valid_email,
    is_valid_iso_date,
    is_valid_phone,
    is_valid_tax_id,
    normalize_country_code,
    normalize_country_codes,
    normalize_nullable_string,
    normalize_required_string,
    parse_integer,
    parse_iso_date,
    single_selection,
    validate_single_choice,
)

from ..field_schema import (
    YES_NO,
    Choice,
    CountryCodes,
    FieldSpec,
    Integer,
    NullableFlag,
    NullableText,
    Options,
    Text,
    normalize_fields,
)
from ..forms import FormType
from ..prefill import apply_holder_kind_default, requires_step4_extras
from ..step_engine import Question, StepContext, StepDefinition

HOLDER_KIND_KEYS = ("person", "entity")
GENDER_KEYS = ("male", "female")
MARITAL_STATUS_KEYS = ("single", "married", "divorced", "domesticPartner", "widower")
PRIMARY_EMPLOYMENT_KEYS = ("employed", "selfEmployed", "retired", "unemployed", "student")
SECONDARY_EMPLOYMENT_KEYS = ("employed", "selfEmployed", "retired", "unemployed", "homemaker", "student")
KNOWLEDGE_LEVEL_KEYS = ("limited", "moderate", "extensive", "none")
TAX_BRACKET_KEYS = ("bracket_0_15", "bracket_15_1_32", "bracket_32_1_50", "bracket_50_1_plus")
RANGE_BUCKET_KEYS = ("under_50k", "50k_100k", "100k_250k", "250k_500k", "500k_1m", "1m_5m", "5m_plus")
INVESTMENT_TYPE_KEYS = (
    "commoditiesFutures",
    "equities",
    "exchangeTradedFunds",
    "fixedAnnuities",
    "fixedInsurance",
    "mutualFunds",
    "options",
    "preciousMetals",
    "realEstate",
    "unitInvestmentTrusts",
    "variableAnnuities",
    "leveragedInverseEtfs",
    "complexProducts",
    "alternativeInvestments",
    "other",
)
ACTIVE_EMPLOYMENT = ("employed", "selfEmployed")
ADDRESS_PARTS = ("line1", "city", "stateProvince", "postalCode", "country")
RANGE_QUESTIONS = (
    ("annualIncomeRange", "Annual income"),
    ("netWorthExPrimaryResidenceRange", "Net worth (excluding primary residence)"),
    ("liquidNetWorthRange", "Liquid net worth"),
)

# name -> [(detail field, answer label, completion message)]
DISCLOSURE_DETAILS: Dict[str, List[Tuple[str, str, str]]] = {
    "relatedAdvisorFirmEmployee": [
        ("advisorEmployeeName", "Employee name", "Employee name is required."),
        ("advisorEmployeeRelationship", "Relationship", "Relationship is required."),
    ],
    "employeeBrokerDealer": [
        ("brokerDealerName", "Broker dealer name", "Broker-dealer name is required."),
    ],
    "relatedBrokerDealerEmployee": [
        ("relatedBrokerDealerName", "Broker dealer name", "Broker-dealer name is required."),
        ("relatedBrokerDealerEmployeeName", "Employee name", "Employee name is required."),
        ("relatedBrokerDealerRelationship", "Relationship", "Relationship is required."),
    ],
    "maintainsOtherBrokerageAccounts": [
        ("otherBrokerageFirms", "Brokerage firm(s)", "Firm name is required."),
    ],
    "exchangeOrFinraAffiliation": [
        ("affiliationDetails", "Affiliation details", "Affiliation details are required."),
    ],
    "seniorOfficerDirectorTenPercentPublicCompany": [
        ("publicCompanyNames", "Company name(s)", "Company name(s) are required."),
    ],
}
DISCLOSURE_KEYS = ("employeeAdvisorFirm",) + tuple(DISCLOSURE_DETAILS)
YEARS_OF_EXPERIENCE_MESSAGE = "Years of investment experience is required."


class TaxId(FieldSpec):
    """SSN or EIN stored as digits only."""

    def normalize(self, raw: Any) -> Optional[str]:
        digits = digits_only(normalize_nullable_string(raw))
        return digits or None


def address_schema() -> Dict[str, NullableText]:
    return {
        "line1": NullableText(),
        "city": NullableText(),
        "stateProvince": NullableText(),
        "postalCode": NullableText(),
        "country": NullableText(upper=True),
    }


PHOTO_ID_SCHEMA = {
    "type": NullableText(),
    "idNumber": NullableText(),
    "countryOfIssue": NullableText(upper=True),
    "dateOfIssue": NullableText(),
    "dateOfExpiration": NullableText(),
}


def build_schema(employment_keys: Sequence[str]) -> Dict[str, Any]:
    by_type: Dict[str, Any] = {
        key: {"knowledge": Options(KNOWLEDGE_LEVEL_KEYS), "sinceYear": Integer(minimum=0)}
        for key in INVESTMENT_TYPE_KEYS
    }
    by_type["other"]["label"] = NullableText()

    affiliations: Dict[str, Any] = {}
    for name in DISCLOSURE_KEYS:
        affiliations[name] = Options(YES_NO)
        for detail, _label, _message in DISCLOSURE_DETAILS.get(name, []):
            affiliations[detail] = NullableText()
    affiliations["yearsOfInvestmentExperience"] = Integer(minimum=0)

    return {
        "holder": {
            "kind": Options(HOLDER_KIND_KEYS),
            "name": Text(),
            "taxId": {
                "ssn": TaxId(),
                "hasEin": Options(YES_NO),
                "ein": TaxId(),
            },
            "contact": {
                "email": Text(),
                "dateOfBirth": NullableText(),
                "specifiedAdult": NullableText(),
                "phones": {
                    "home": NullableText(),
                    "business": NullableText(),
                    "mobile": NullableText(),
                },
            },
            "legalAddress": address_schema(),
            "mailingDifferent": Options(YES_NO),
            "mailingAddress": address_schema(),
            "citizenship": {
                "primary": CountryCodes(),
                "additional": CountryCodes(),
            },
            "gender": Options(GENDER_KEYS),
            "maritalStatus": Options(MARITAL_STATUS_KEYS),
            "employment": {
                "status": Options(employment_keys),
                "occupation": NullableText(),
                "yearsEmployed": Integer(minimum=0),
                "typeOfBusiness": NullableText(),
                "employerName": NullableText(),
                "employerAddress": address_schema(),
            },
        },
        "investmentKnowledge": {
            "general": Options(KNOWLEDGE_LEVEL_KEYS),
            "byType": by_type,
        },
        "financialInformation": {
            "annualIncomeRange": {"fromBracket": Choice(RANGE_BUCKET_KEYS), "toBracket": Choice(RANGE_BUCKET_KEYS)},
            "netWorthExPrimaryResidenceRange": {"fromBracket": Choice(RANGE_BUCKET_KEYS), "toBracket": Choice(RANGE_BUCKET_KEYS)},
            "liquidNetWorthRange": {"fromBracket": Choice(RANGE_BUCKET_KEYS), "toBracket": Choice(RANGE_BUCKET_KEYS)},
            "taxBracket": Options(TAX_BRACKET_KEYS),
        },
        "governmentIdentification": {
            "photoId1": dict(PHOTO_ID_SCHEMA),
            "photoId2": dict(PHOTO_ID_SCHEMA),
            "requirementContext": {
                "requiresDocumentaryId": NullableFlag(),
                "isNonResidentAlien": NullableFlag(),
            },
        },
        "affiliations": affiliations,
    }


# =============================================================================
# SHARED PREDICATES
# =============================================================================

def is_person(fields: Dict[str, Any]) -> bool:
    return single_selection(fields["holder"]["kind"]) == "person"


def is_employment_active(fields: Dict[str, Any]) -> bool:
    return single_selection(fields["holder"]["employment"]["status"]) in ACTIVE_EMPLOYMENT


def has_any_phone(phones: Dict[str, Any]) -> bool:
    return bool(phones.get("home") or phones.get("business") or phones.get("mobile"))


def range_order_error(from_bracket: str, to_bracket: str) -> Optional[str]:
    if RANGE_BUCKET_KEYS.index(from_bracket) <= RANGE_BUCKET_KEYS.index(to_bracket):
        return None
    return "The From range must be less than or equal to the To range."


def liquid_exceeds_net_worth(net_worth_to: Optional[str], liquid_to: Optional[str]) -> bool:
    if not net_worth_to or not liquid_to:
        return False
    return RANGE_BUCKET_KEYS.index(liquid_to) > RANGE_BUCKET_KEYS.index(net_worth_to)


def is_photo_id_empty(block: Dict[str, Any]) -> bool:
    return not any(block.get(key) for key in PHOTO_ID_SCHEMA)


def is_photo_id_complete(block: Dict[str, Any]) -> bool:
    return all(block.get(key) for key in PHOTO_ID_SCHEMA)


def year_error(value: Any, label: str) -> Optional[str]:
    if value is None or value == "":
        return f"{label} is required."
    year = parse_integer(value)
    current_year = current_utc_year()
    if year is None or year < 1900 or year > current_year:
        return f"Enter a valid {label.lower()} between 1900 and {current_year}."
    return None


class HolderStepRules:
    """Question validators, visibility and completion for one holder step.

    Every error key is the step prefix followed by the question path,
    e.g. ``step4.holder.legalAddress.city``.
    """

    def __init__(self, prefix: str, employment_keys: Sequence[str]):
        self.prefix = prefix
        self.employment_keys = tuple(employment_keys)

    def key(self, *parts: str) -> str:
        return ".".join((self.prefix,) + parts)

    # =========================================================================
    # ANSWER VALIDATORS
    # =========================================================================

    def choice(self, key: str, keys: Sequence[str], label: str):

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            errors: FieldErrors = {}
            value = validate_single_choice(
                errors, key, answer, keys, f"Please choose one {label}.", f"Please choose exactly one {label}."
            )
            return ValidationResult.from_errors(errors, value)

        return validate

    def required(self, key: str, label: str):

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            value = normalize_required_string(answer)
            if not value:
                return ValidationResult.failed({key: f"{label} is required."})
            return ValidationResult.ok(value)

        return validate

    def tax_id(self, key: str, label: str):

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            digits = digits_only(normalize_nullable_string(answer))
            if not digits:
                return ValidationResult.failed({key: f"{label} is required."})
            if not is_valid_tax_id(digits):
                return ValidationResult.failed({key: f"Enter a valid {label}."})
            return ValidationResult.ok(digits)

        return validate

    def year(self, key: str, label: str):

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            message = year_error(answer, label)
            if message:
                return ValidationResult.failed({key: message})
            return ValidationResult.ok(parse_integer(answer))

        return validate

    def country(self, key: str, label: str):

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            code = normalize_country_code(answer)
            if not code:
                return ValidationResult.failed({key: f"{label} is required."})
            if not is_valid_country_code(code):
                return ValidationResult.failed({key: f"Enter a valid {label.lower()}."})
            return ValidationResult.ok(code)

        return validate

    def validate_email(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        key = self.key("holder.contact.email")
        value = normalize_required_string(answer)
        if not value:
            return ValidationResult.failed({key: "Email is required."})
        if not is_valid_email(value):
            return ValidationResult.failed({key: "Enter a valid email."})
        return ValidationResult.ok(value)

    def validate_date_of_birth(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        key = self.key("holder.contact.dateOfBirth")
        value = normalize_nullable_string(answer)
        if not value:
            return ValidationResult.failed({key: "Date of birth is required."})
        if not is_valid_iso_date(value):
            return ValidationResult.failed({key: "Enter a valid date of birth in YYYY-MM-DD format."})
        if not is_past_date(value):
            return ValidationResult.failed({key: "Date of birth must be in the past."})
        return ValidationResult.ok(value)

    def validate_phones(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        record = answer if isinstance(answer, dict) else {}
        errors: FieldErrors = {}
        phones = {}
        for kind in ("home", "business", "mobile"):
            value = normalize_nullable_string(record.get(kind))
            if value and not is_valid_phone(value):
                errors[self.key("holder.contact.phones", kind)] = "Enter a valid phone number."
            phones[kind] = value

        if not errors and not has_any_phone(phones):
            errors[self.key("holder.contact.phones.mobile")] = (
                "Enter at least one phone number (home, business, or mobile)."
            )
        return ValidationResult.from_errors(errors, phones)

    def address(self, mailing: bool):
        field_name = "mailingAddress" if mailing else "legalAddress"
        labels = {
            "line1": "Mailing address" if mailing else "Legal address",
            "city": "Mailing city" if mailing else "City",
            "stateProvince": "Mailing state/province" if mailing else "State/Province",
            "postalCode": "Mailing ZIP/Postal code" if mailing else "ZIP/Postal code",
            "country": "Mailing country" if mailing else "Country",
        }

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            record = answer if isinstance(answer, dict) else {}
            errors: FieldErrors = {}
            value = {}
            for part in ADDRESS_PARTS[:-1]:
                value[part] = normalize_nullable_string(record.get(part))
                if not value[part]:
                    errors[self.key("holder", field_name, part)] = f"{labels[part]} is required."

            line1 = value["line1"]
            if line1 and not mailing and is_po_box(line1):
                errors[self.key("holder", field_name, "line1")] = "P.O. Box is not allowed for legal address."

            value["country"] = normalize_country_code(record.get("country"))
            country_key = self.key("holder", field_name, "country")
            if not value["country"]:
                errors[country_key] = f"{labels['country']} is required."
            elif not is_valid_country_code(value["country"]):
                errors[country_key] = f"Enter a valid {labels['country'].lower()}."

            return ValidationResult.from_errors(errors, value)

        return validate

    def validate_primary_citizenship(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        key = self.key("holder.citizenship.primary")
        codes = normalize_country_codes(answer)
        if not is_person(fields):
            if len(codes) != 1:
                return ValidationResult.failed({key: "Select exactly one country."})
        elif not codes:
            return ValidationResult.failed({key: "Select at least one country."})
        return ValidationResult.ok(codes)

    def validate_additional_citizenship(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        codes = normalize_country_codes(answer)
        primary = fields["holder"]["citizenship"]["primary"]
        if any(code in primary for code in codes):
            return ValidationResult.failed({
                self.key("holder.citizenship.additional"): "Additional citizenship cannot duplicate primary citizenship.",
            })
        return ValidationResult.ok(codes)

    def validate_knowledge_experience(self, answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        record = answer if isinstance(answer, dict) else {}
        by_type_record = record.get("byType") if isinstance(record.get("byType"), dict) else {}
        errors: FieldErrors = {}

        general = validate_single_choice(
            errors,
            self.key("investment.generalKnowledge"),
            record.get("general"),
            KNOWLEDGE_LEVEL_KEYS,
            "Please choose one knowledge level.",
            "Please choose exactly one knowledge level.",
        )

        by_type: Dict[str, Any] = {}
        for type_key in INVESTMENT_TYPE_KEYS:
            type_record = by_type_record.get(type_key) if isinstance(by_type_record.get(type_key), dict) else {}
            entry: Dict[str, Any] = {
                "knowledge": create_boolean_map(KNOWLEDGE_LEVEL_KEYS),
                "sinceYear": None,
            }
            if type_key == "other":
                entry["label"] = None
            by_type[type_key] = entry

            question_key = self.key("investment.byType", type_key)
            knowledge = validate_single_choice(
                errors,
                f"{question_key}.knowledge",
                type_record.get("knowledge"),
                KNOWLEDGE_LEVEL_KEYS,
                "Please choose one knowledge level.",
                "Please choose exactly one knowledge level.",
            )
            if knowledge is None:
                continue
            entry["knowledge"] = knowledge

            # A "none" knowledge level hides the since-year follow-up.
            if single_selection(knowledge) == "none":
                continue

            message = year_error(type_record.get("sinceYear"), "Since year")
            if message:
                errors[f"{question_key}.sinceYear"] = message
            else:
                entry["sinceYear"] = parse_integer(type_record.get("sinceYear"))

            if type_key == "other":
                label = normalize_nullable_string(type_record.get("label"))
                if not label:
                    errors[self.key("investment.byType.other.label")] = "Other investment type is required."
                entry["label"] = label

        return ValidationResult.from_errors(errors, {
            "general": general or create_boolean_map(KNOWLEDGE_LEVEL_KEYS),
            "byType": by_type,
        })

    def income_range(self, name: str):
        question_key = self.key("financial", name)

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            if not isinstance(answer, dict):
                return ValidationResult.failed({
                    f"{question_key}.fromBracket": "Choose a From range.",
                    f"{question_key}.toBracket": "Choose a To range.",
                })

            value = {
                "fromBracket": Choice(RANGE_BUCKET_KEYS).normalize(normalize_nullable_string(answer.get("fromBracket"))),
                "toBracket": Choice(RANGE_BUCKET_KEYS).normalize(normalize_nullable_string(answer.get("toBracket"))),
            }
            errors: FieldErrors = {}
            if not value["fromBracket"]:
                errors[f"{question_key}.fromBracket"] = "Choose a From range."
            if not value["toBracket"]:
                errors[f"{question_key}.toBracket"] = "Choose a To range."
            if value["fromBracket"] and value["toBracket"]:
                order_error = range_order_error(value["fromBracket"], value["toBracket"])
                if order_error:
                    errors[f"{question_key}.toBracket"] = order_error
            if errors:
                return ValidationResult.failed(errors)

            if name == "liquidNetWorthRange":
                net_worth_to = fields["financialInformation"]["netWorthExPrimaryResidenceRange"]["toBracket"]
                if liquid_exceeds_net_worth(net_worth_to, value["toBracket"]):
                    return ValidationResult.failed({
                        f"{question_key}.toBracket": "Liquid net worth cannot exceed net worth (excluding primary residence).",
                    })
            return ValidationResult.ok(value)

        return validate

    def photo_id_errors(self, block: Dict[str, Any], question_key: str) -> FieldErrors:
        errors: FieldErrors = {}
        if is_photo_id_empty(block):
            return errors

        if not block["type"]:
            errors[f"{question_key}.type"] = "Photo ID type is required."
        if not block["idNumber"]:
            errors[f"{question_key}.idNumber"] = "ID number is required."

        if not block["countryOfIssue"]:
            errors[f"{question_key}.countryOfIssue"] = "Country of issue is required."
        elif not is_valid_country_code(block["countryOfIssue"]):
            errors[f"{question_key}.countryOfIssue"] = "Enter a valid country of issue."

        issued = block["dateOfIssue"]
        if not issued:
            errors[f"{question_key}.dateOfIssue"] = "Date of issue is required."
        elif not is_valid_iso_date(issued):
            errors[f"{question_key}.dateOfIssue"] = "Use YYYY-MM-DD format for date of issue."
        elif not is_past_or_today(issued):
            errors[f"{question_key}.dateOfIssue"] = "Date of issue cannot be in the future."

        expires = block["dateOfExpiration"]
        if not expires:
            errors[f"{question_key}.dateOfExpiration"] = "Date of expiration is required."
        elif not is_valid_iso_date(expires):
            errors[f"{question_key}.dateOfExpiration"] = "Use YYYY-MM-DD format for date of expiration."
        elif not is_today_or_future(expires):
            errors[f"{question_key}.dateOfExpiration"] = "Photo ID is expired. Enter an unexpired ID."

        if is_valid_iso_date(issued) and is_valid_iso_date(expires) and parse_iso_date(expires) < parse_iso_date(issued):
            errors[f"{question_key}.dateOfExpiration"] = "Date of expiration must be on or after date of issue."
        return errors

    def photo_id(self, name: str):
        question_key = self.key("govId", name)

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            block = normalize_fields(PHOTO_ID_SCHEMA, answer)
            return ValidationResult.from_errors(self.photo_id_errors(block, question_key), block)

        return validate

    def disclosure(self, name: str):
        """Yes/no disclosure whose details are required, and kept, only on yes."""
        question_key = self.key("disclosure", name)
        details = DISCLOSURE_DETAILS.get(name, [])

        def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
            if not details:
                return self.choice(question_key, YES_NO, "option")(answer, fields, context)

            record = answer if isinstance(answer, dict) else {}
            errors: FieldErrors = {}
            selection = validate_single_choice(
                errors,
                question_key,
                record.get("selection", record.get(name)),
                YES_NO,
                "Please choose one option.",
                "Please choose exactly one option.",
            )
            if selection is None:
                return ValidationResult.failed(errors)

            answered_yes = selection["yes"]
            value: Dict[str, Any] = {name: selection}
            for detail, label, _message in details:
                detail_value = normalize_nullable_string(record.get(detail))
                if answered_yes and not detail_value:
                    errors[f"{question_key}.{detail}"] = f"{label} is required."
                value[detail] = detail_value if answered_yes else None

            if name == "maintainsOtherBrokerageAccounts":
                years = Integer(minimum=0).normalize(record.get("yearsOfInvestmentExperience"))
                if answered_yes and years is None:
                    errors[f"{question_key}.yearsOfInvestmentExperience"] = YEARS_OF_EXPERIENCE_MESSAGE
                value["yearsOfInvestmentExperience"] = years if answered_yes else None

            return ValidationResult.from_errors(errors, value)

        return validate

    # =========================================================================
    # QUESTION TABLE
    # =========================================================================

    def questions(self) -> List[Question]:
        key = self.key
        employer_labels = {
            "line1": "Employer address",
            "city": "Employer city",
            "stateProvince": "Employer state/province",
            "postalCode": "Employer ZIP/Postal code",
        }

        questions = [
            Question(key("holder.kind"), "holder.kind", self.choice(key("holder.kind"), HOLDER_KIND_KEYS, "holder type")),
            Question(key("holder.name"), "holder.name", self.required(key("holder.name"), "Name")),
            Question(key("holder.taxId.ssn"), "holder.taxId.ssn", self.tax_id(key("holder.taxId.ssn"), "SSN")),
            Question(
                key("holder.taxId.hasEin"),
                "holder.taxId.hasEin",
                self.choice(key("holder.taxId.hasEin"), YES_NO, "EIN option"),
            ),
            Question(key("holder.taxId.ein"), "holder.taxId.ein", self.tax_id(key("holder.taxId.ein"), "EIN")),
            Question(key("holder.contact.email"), "holder.contact.email", self.validate_email),
            Question(key("holder.contact.dateOfBirth"), "holder.contact.dateOfBirth", self.validate_date_of_birth),
            Question(
                key("holder.contact.specifiedAdult"),
                "holder.contact.specifiedAdult",
                self.required(key("holder.contact.specifiedAdult"), "Specified adult"),
            ),
            Question(key("holder.contact.phones"), "holder.contact.phones", self.validate_phones),
            Question(key("holder.legalAddress"), "holder.legalAddress", self.address(mailing=False)),
            Question(
                key("holder.mailingDifferent"),
                "holder.mailingDifferent",
                self.choice(key("holder.mailingDifferent"), YES_NO, "mailing preference"),
            ),
            Question(key("holder.mailingAddress"), "holder.mailingAddress", self.address(mailing=True)),
            Question(key("holder.citizenship.primary"), "holder.citizenship.primary", self.validate_primary_citizenship),
            Question(
                key("holder.citizenship.additional"),
                "holder.citizenship.additional",
                self.validate_additional_citizenship,
            ),
            Question(key("holder.gender"), "holder.gender", self.choice(key("holder.gender"), GENDER_KEYS, "gender")),
            Question(
                key("holder.maritalStatus"),
                "holder.maritalStatus",
                self.choice(key("holder.maritalStatus"), MARITAL_STATUS_KEYS, "marital status"),
            ),
            Question(
                key("holder.employment.status"),
                "holder.employment.status",
                self.choice(key("holder.employment.status"), self.employment_keys, "employment status"),
            ),
            Question(
                key("holder.employment.occupation"),
                "holder.employment.occupation",
                self.required(key("holder.employment.occupation"), "Occupation"),
            ),
            Question(
                key("holder.employment.yearsEmployed"),
                "holder.employment.yearsEmployed",
                self.year(key("holder.employment.yearsEmployed"), "Years employed"),
            ),
            Question(
                key("holder.employment.typeOfBusiness"),
                "holder.employment.typeOfBusiness",
                self.required(key("holder.employment.typeOfBusiness"), "Type of business"),
            ),
            Question(
                key("holder.employment.employerName"),
                "holder.employment.employerName",
                self.required(key("holder.employment.employerName"), "Employer name"),
            ),
        ]
        for part, label in employer_labels.items():
            path = f"holder.employment.employerAddress.{part}"
            questions.append(Question(key(path), path, self.required(key(path), label)))
        questions.append(Question(
            key("holder.employment.employerAddress.country"),
            "holder.employment.employerAddress.country",
            self.country(key("holder.employment.employerAddress.country"), "Employer country"),
        ))

        questions.append(Question(
            key("investment.knowledgeExperience"), "investmentKnowledge", self.validate_knowledge_experience
        ))
        for name, _label in RANGE_QUESTIONS:
            questions.append(Question(key("financial", name), f"financialInformation.{name}", self.income_range(name)))
        questions.append(Question(
            key("financial.taxBracket"),
            "financialInformation.taxBracket",
            self.choice(key("financial.taxBracket"), TAX_BRACKET_KEYS, "tax bracket"),
        ))
        for name in ("photoId1", "photoId2"):
            questions.append(Question(key("govId", name), f"governmentIdentification.{name}", self.photo_id(name)))

        for name in DISCLOSURE_KEYS:
            details = DISCLOSURE_DETAILS.get(name)
            if not details:
                questions.append(Question(key("disclosure", name), f"affiliations.{name}", self.disclosure(name)))
                continue
            merge_keys = (name,) + tuple(detail for detail, _label, _message in details)
            if name == "maintainsOtherBrokerageAccounts":
                merge_keys += ("yearsOfInvestmentExperience",)
            questions.append(Question(key("disclosure", name), "affiliations", self.disclosure(name), merge_keys))
        return questions

    # =========================================================================
    # VISIBILITY
    # =========================================================================

    def visible(self, fields: Dict[str, Any], context: StepContext) -> List[str]:
        key = self.key
        holder = fields["holder"]
        person = is_person(fields)

        visible = [key("holder.kind"), key("holder.name")]
        if person:
            visible.append(key("holder.taxId.ssn"))
        visible.append(key("holder.taxId.hasEin"))
        if single_selection(holder["taxId"]["hasEin"]) == "yes":
            visible.append(key("holder.taxId.ein"))
        visible.append(key("holder.contact.email"))
        if person:
            visible.append(key("holder.contact.dateOfBirth"))
            if is_minor(holder["contact"]["dateOfBirth"]):
                visible.append(key("holder.contact.specifiedAdult"))

        visible += [key("holder.contact.phones"), key("holder.legalAddress"), key("holder.mailingDifferent")]
        if single_selection(holder["mailingDifferent"]) == "yes":
            visible.append(key("holder.mailingAddress"))
        visible += [key("holder.citizenship.primary"), key("holder.citizenship.additional")]

        if person:
            visible += [key("holder.gender"), key("holder.maritalStatus"), key("holder.employment.status")]
            if is_employment_active(fields):
                visible += [
                    key("holder.employment.occupation"),
                    key("holder.employment.yearsEmployed"),
                    key("holder.employment.typeOfBusiness"),
                    key("holder.employment.employerName"),
                ]
                visible += [key("holder.employment.employerAddress", part) for part in ADDRESS_PARTS]

        visible.append(key("investment.knowledgeExperience"))
        visible += [key("financial", name) for name, _label in RANGE_QUESTIONS]
        visible.append(key("financial.taxBracket"))
        visible += [key("govId.photoId1"), key("govId.photoId2")]
        visible += [key("disclosure", name) for name in DISCLOSURE_KEYS]
        return visible

    # =========================================================================
    # COMPLETION
    # =========================================================================

    def completion(self, fields: Dict[str, Any], context: StepContext) -> FieldErrors:
        key = self.key
        holder = fields["holder"]
        kind = single_selection(holder["kind"])
        errors: FieldErrors = {}

        if kind is None:
            errors[key("holder.kind")] = "Choose Person or Entity."
        if not holder["name"]:
            errors[key("holder.name")] = "Name is required."

        if kind == "person":
            ssn = holder["taxId"]["ssn"]
            if not ssn:
                errors[key("holder.taxId.ssn")] = "SSN is required."
            elif not is_valid_tax_id(ssn):
                errors[key("holder.taxId.ssn")] = "Enter a valid SSN."

        has_ein = single_selection(holder["taxId"]["hasEin"])
        if has_ein is None:
            errors[key("holder.taxId.hasEin")] = "Select Yes or No for EIN."
        elif has_ein == "yes":
            ein = holder["taxId"]["ein"]
            if not ein:
                errors[key("holder.taxId.ein")] = "EIN is required."
            elif not is_valid_tax_id(ein):
                errors[key("holder.taxId.ein")] = "Enter a valid EIN."

        email = holder["contact"]["email"]
        if not email:
            errors[key("holder.contact.email")] = "Email is required."
        elif not is_valid_email(email):
            errors[key("holder.contact.email")] = "Enter a valid email."

        if kind == "person":
            born = holder["contact"]["dateOfBirth"]
            if not born:
                errors[key("holder.contact.dateOfBirth")] = "Date of birth is required."
            elif not is_valid_iso_date(born):
                errors[key("holder.contact.dateOfBirth")] = "Use YYYY-MM-DD format."
            elif not is_past_date(born):
                errors[key("holder.contact.dateOfBirth")] = "Date of birth must be in the past."
            if is_minor(born) and not holder["contact"]["specifiedAdult"]:
                errors[key("holder.contact.specifiedAdult")] = "Specified adult is required for minors."

        if not has_any_phone(holder["contact"]["phones"]):
            errors[key("holder.contact.phones.mobile")] = "Enter at least one phone number."

        self._address_completion(errors, holder["legalAddress"], "legalAddress", mailing=False)
        mailing_different = single_selection(holder["mailingDifferent"])
        if mailing_different is None:
            errors[key("holder.mailingDifferent")] = "Select whether mailing address is different."
        elif mailing_different == "yes":
            self._address_completion(errors, holder["mailingAddress"], "mailingAddress", mailing=True)

        citizenship = holder["citizenship"]
        if not citizenship["primary"]:
            errors[key("holder.citizenship.primary")] = "Select at least one primary citizenship."
        if kind == "entity" and len(citizenship["primary"]) != 1:
            errors[key("holder.citizenship.primary")] = "Entity must have exactly one primary country."
        if any(code in citizenship["primary"] for code in citizenship["additional"]):
            errors[key("holder.citizenship.additional")] = "Additional citizenship cannot duplicate primary citizenship."

        if kind == "person":
            self._person_completion(errors, fields)

        self._knowledge_completion(errors, fields["investmentKnowledge"])
        self._financial_completion(errors, fields["financialInformation"])
        self._government_id_completion(errors, fields["governmentIdentification"])
        self._affiliation_completion(errors, fields["affiliations"])
        return errors

    def _address_completion(self, errors: FieldErrors, address: Dict[str, Any], field_name: str, mailing: bool) -> None:
        prefix = self.key("holder", field_name)
        line1 = address["line1"]
        if not line1:
            errors[f"{prefix}.line1"] = "Mailing address is required." if mailing else "Legal address is required."
        elif not mailing and is_po_box(line1):
            errors[f"{prefix}.line1"] = "P.O. Box is not allowed for legal address."

        labels = (
            ("city", "Mailing city" if mailing else "City"),
            ("stateProvince", "Mailing state/province" if mailing else "State/Province"),
            ("postalCode", "Mailing ZIP/Postal code" if mailing else "ZIP/Postal code"),
        )
        for part, label in labels:
            if not address[part]:
                errors[f"{prefix}.{part}"] = f"{label} is required."

        country_label = "Mailing country" if mailing else "Country"
        if not address["country"]:
            errors[f"{prefix}.country"] = f"{country_label} is required."
        elif not is_valid_country_code(address["country"]):
            errors[f"{prefix}.country"] = f"Enter a valid {country_label.lower()}."

    def _person_completion(self, errors: FieldErrors, fields: Dict[str, Any]) -> None:
        key = self.key
        holder = fields["holder"]
        if count_true(holder["gender"]) != 1:
            errors[key("holder.gender")] = "Select gender."
        if count_true(holder["maritalStatus"]) != 1:
            errors[key("holder.maritalStatus")] = "Select marital status."
        if count_true(holder["employment"]["status"]) != 1:
            errors[key("holder.employment.status")] = "Select employment status."
        if not is_employment_active(fields):
            return

        employment = holder["employment"]
        if not employment["occupation"]:
            errors[key("holder.employment.occupation")] = "Occupation is required."
        if employment["yearsEmployed"] is None:
            errors[key("holder.employment.yearsEmployed")] = "Enter years employed (0 or more)."
        if not employment["typeOfBusiness"]:
            errors[key("holder.employment.typeOfBusiness")] = "Type of business is required."
        if not employment["employerName"]:
            errors[key("holder.employment.employerName")] = "Employer name is required."

        employer_address = employment["employerAddress"]
        for part, label in (
            ("line1", "Employer address"),
            ("city", "Employer city"),
            ("stateProvince", "Employer state/province"),
            ("postalCode", "Employer ZIP/Postal code"),
        ):
            if not employer_address[part]:
                errors[key("holder.employment.employerAddress", part)] = f"{label} is required."
        if not employer_address["country"]:
            errors[key("holder.employment.employerAddress.country")] = "Employer country is required."
        elif not is_valid_country_code(employer_address["country"]):
            errors[key("holder.employment.employerAddress.country")] = "Enter a valid employer country."

    def _knowledge_completion(self, errors: FieldErrors, knowledge: Dict[str, Any]) -> None:
        if count_true(knowledge["general"]) != 1:
            errors[self.key("investment.generalKnowledge")] = "Select one overall investment knowledge option."

        current_year = current_utc_year()
        for type_key in INVESTMENT_TYPE_KEYS:
            entry = knowledge["byType"][type_key]
            question_key = self.key("investment.byType", type_key)
            if count_true(entry["knowledge"]) != 1:
                errors[f"{question_key}.knowledge"] = "Select one knowledge option."

            selection = single_selection(entry["knowledge"])
            if selection is None or selection == "none":
                continue
            since_year = entry["sinceYear"]
            if since_year is None or since_year < 1900 or since_year > current_year:
                errors[f"{question_key}.sinceYear"] = f"Enter a valid Since Year between 1900 and {current_year}."
            if type_key == "other" and not entry["label"]:
                errors[self.key("investment.byType.other.label")] = "Other investment type is required."

    def _financial_completion(self, errors: FieldErrors, financial: Dict[str, Any]) -> None:
        for name, label in RANGE_QUESTIONS:
            question_key = self.key("financial", name)
            income_range = financial[name]
            if not income_range["fromBracket"]:
                errors[f"{question_key}.fromBracket"] = f"{label} from range is required."
            if not income_range["toBracket"]:
                errors[f"{question_key}.toBracket"] = f"{label} to range is required."
            if income_range["fromBracket"] and income_range["toBracket"]:
                order_error = range_order_error(income_range["fromBracket"], income_range["toBracket"])
                if order_error:
                    errors[f"{question_key}.toBracket"] = order_error

        if liquid_exceeds_net_worth(
            financial["netWorthExPrimaryResidenceRange"]["toBracket"],
            financial["liquidNetWorthRange"]["toBracket"],
        ):
            errors[self.key("financial.liquidNetWorthRange.toBracket")] = (
                "Liquid net worth cannot exceed net worth (excluding primary residence)."
            )

        if count_true(financial["taxBracket"]) != 1:
            errors[self.key("financial.taxBracket")] = "Select one tax bracket."

    def _government_id_completion(self, errors: FieldErrors, identification: Dict[str, Any]) -> None:
        for name in ("photoId1", "photoId2"):
            errors.update(self.photo_id_errors(identification[name], self.key("govId", name)))

        requirement = identification["requirementContext"]
        if requirement["requiresDocumentaryId"] is True or requirement["isNonResidentAlien"] is True:
            if not (is_photo_id_complete(identification["photoId1"]) or is_photo_id_complete(identification["photoId2"])):
                errors[self.key("govId.photoId1")] = "At least one complete, unexpired government photo ID is required."

    def _affiliation_completion(self, errors: FieldErrors, affiliations: Dict[str, Any]) -> None:
        for name in DISCLOSURE_KEYS:
            question_key = self.key("disclosure", name)
            selection = single_selection(affiliations[name])
            if selection is None:
                errors[question_key] = "Select Yes or No."
                continue
            if selection != "yes":
                continue
            for detail, _label, message in DISCLOSURE_DETAILS.get(name, []):
                if not affiliations[detail]:
                    errors[f"{question_key}.{detail}"] = message
            if name == "maintainsOtherBrokerageAccounts" and affiliations["yearsOfInvestmentExperience"] is None:
                errors[f"{question_key}.yearsOfInvestmentExperience"] = YEARS_OF_EXPERIENCE_MESSAGE


def build_holder_step(number: int, employment_keys: Sequence[str], **options: Any) -> StepDefinition:
    rules = HolderStepRules(f"step{number}", employment_keys)
    return StepDefinition(
        form_type=FormType.INVESTOR_PROFILE,
        number=number,
        schema=build_schema(employment_keys),
        questions=rules.questions(),
        visible=rules.visible,
        completion=rules.completion,
        prefill=apply_holder_kind_default,
        **options,
    )


PRIMARY_HOLDER = build_holder_step(3, PRIMARY_EMPLOYMENT_KEYS, extras=requires_step4_extras)
SECONDARY_HOLDER = build_holder_step(
    4,
    SECONDARY_EMPLOYMENT_KEYS,
    is_required=lambda context: context.requires_step4,
)
