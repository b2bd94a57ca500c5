"""Pydantic schemas for the per-step sections of an application.

Every ``…Data`` schema has only optional fields so PATCH (partial save)
works while the applicant is still typing.  The ``…Complete`` variants
are what the step gate validates a stored section against before the
step counts as done.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator, model_validator

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
YesNo = Literal["yes", "no"]


# ── Catalogues ───────────────────────────────────────────────

# code → (monthly fee, setup fee)
PACKAGE_CATALOG: dict[str, tuple[float, float]] = {
    "starter": (999, 1500),
    "business": (2499, 2500),
    "enterprise": (4999, 5000),
}

# document type → required?
DOCUMENT_CATALOG: dict[str, bool] = {
    "id_front": True,
    "id_back": True,
    "business_permit": False,
    "proof_of_address": True,
    "tax_certificate": False,
}

REQUIRED_DOCUMENTS: tuple[str, ...] = tuple(
    doc for doc, required in DOCUMENT_CATALOG.items() if required
)


class _Section(BaseModel):
    model_config = {"extra": "forbid"}


# ── Step 1: Personal information ─────────────────────────────

class PersonalInfoData(_Section):
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    nationality: str | None = None
    email: str | None = None
    phone_number: str | None = None
    mobile_number: str | None = None
    civil_status: str | None = None
    id_type: str | None = None
    id_number: str | None = None


class PersonalInfoComplete(PersonalInfoData):
    """Name and a syntactically valid email are required."""
    first_name: RequiredText
    last_name: RequiredText
    email: EmailStr


# ── Step 2: Background check ─────────────────────────────────

class BackgroundCheckData(_Section):
    first_time_applying: str | None = None
    ever_charged: str | None = None
    declared_bankruptcy: str | None = None
    bankruptcy_details: str | None = None
    income_source: str | None = None


class BackgroundCheckComplete(BackgroundCheckData):
    """All three yes/no questions answered; details required after a "yes" on bankruptcy."""
    first_time_applying: YesNo
    ever_charged: YesNo
    declared_bankruptcy: YesNo
    income_source: RequiredText

    @model_validator(mode="after")
    def _bankruptcy_details(self):
        if self.declared_bankruptcy == "yes" and not (self.bankruptcy_details or "").strip():
            raise ValueError("Bankruptcy details are required")
        return self


# ── Step 3: Business information ─────────────────────────────

class BusinessInfoData(_Section):
    business_name: str | None = None
    business_type: str | None = None
    business_nature: str | None = None
    years_operating: str | None = None
    daily_transactions: str | None = None
    has_existing_business: bool | None = None
    is_first_time_business: bool | None = None


class BusinessInfoComplete(BusinessInfoData):
    business_type: RequiredText
    business_nature: RequiredText
    years_operating: RequiredText
    daily_transactions: RequiredText
    has_existing_business: bool
    is_first_time_business: bool


# ── Step 4: Location ─────────────────────────────────────────

class AddressData(_Section):
    region: str | None = None
    province: str | None = None
    city: str | None = None
    barangay: str | None = None
    street_address: str | None = None
    landmark: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class AddressComplete(AddressData):
    region: RequiredText
    province: RequiredText
    city: RequiredText
    barangay: RequiredText
    street_address: RequiredText


class LocationData(_Section):
    address: AddressData | None = None
    business_location: AddressData | None = None
    business_location_same_as_address: bool | None = None
    landmark: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class LocationComplete(LocationData):
    """Full home address plus map coordinates."""
    address: AddressComplete
    business_location: AddressComplete | None = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def _same_as_address(cls, data):
        # A business address left over from before "same as address" was ticked is ignored
        if isinstance(data, dict) and data.get("business_location_same_as_address"):
            data = {**data, "business_location": None}
        return data


# ── Step 5: Package selection ────────────────────────────────

class PackageData(_Section):
    package_type: str | None = None
    monthly_fee: float | None = None
    setup_fee: float | None = None


class PackageComplete(PackageData):
    """Selected package must exist and carry the catalogue fees."""
    package_type: RequiredText
    monthly_fee: float
    setup_fee: float

    @field_validator("package_type")
    @classmethod
    def _known_package(cls, v: str) -> str:
        if v not in PACKAGE_CATALOG:
            raise ValueError(f"Unknown package: {v}")
        return v

    @model_validator(mode="after")
    def _fees_match(self):
        monthly, setup = PACKAGE_CATALOG[self.package_type]
        if self.monthly_fee != monthly or self.setup_fee != setup:
            raise ValueError(
                f"Fees do not match the {self.package_type} package "
                f"(monthly {monthly:g}, setup {setup:g})"
            )
        return self


# ── Step 6: Documents ────────────────────────────────────────

class DocumentsData(_Section):
    # document type → file reference issued by the upload service
    uploaded: dict[str, str] | None = None

    @field_validator("uploaded")
    @classmethod
    def _known_types(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        if v:
            unknown = sorted(set(v) - set(DOCUMENT_CATALOG))
            if unknown:
                raise ValueError(f"Unknown document types: {', '.join(unknown)}")
        return v


# ── Step 7: Signature & terms ────────────────────────────────

class SignatureData(_Section):
    terms_accepted: bool | None = None
    signature_url: str | None = None


class SignatureComplete(SignatureData):
    terms_accepted: bool
    signature_url: RequiredText

    @field_validator("terms_accepted")
    @classmethod
    def _accepted(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must accept the terms and conditions")
        return v
