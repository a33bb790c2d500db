"""Lead ingestion schemas."""

from pydantic import BaseModel, ConfigDict, Field

SHEET_HEADER = ["Name", "Email", "Phone", "Annual Salary", "Source", "Created_At"]


class LeadFields(BaseModel):
    """POST /api/leads request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str | None = None
    annual_salary: str | None = Field(default=None, alias="annualSalary")
    source: str | None = None
    message: str | None = None

    def to_row(self, created_at: str) -> list[str]:
        """Sheet row in SHEET_HEADER order; message is kept out of the sheet."""
        return [
            self.name or "",
            self.email or "",
            self.phone or "",
            self.annual_salary or "",
            self.source or "",
            created_at,
        ]
