"""Template assemblers: typed records -> ordered Blocks, one per document kind."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from docgen import blocks as b
from docgen.config import BusinessInfo
from docgen.errors import InputValidationError
from docgen.markdown_parser import parse_markdown
from docgen.model import DocumentKind, DocumentMetadata
from docgen.records import (
    ContractData,
    DateLike,
    IntakeData,
    InvoiceData,
    MarkdownData,
    ProposalData,
)

logger = logging.getLogger("docgen")

TOTALS_INDENT = 280.0
BLANK_DATE = "______________"

TIER_NAMES = {"good": "GOOD", "better": "BETTER", "best": "BEST"}
MAINTENANCE_NAMES = {
    "diy": "DIY (Self-Managed)",
    "essential": "Essential Plan",
    "standard": "Standard Plan",
    "premium": "Premium Plan",
}
TIMELINE_NAMES = {
    "asap": "As Soon As Possible",
    "1-month": "1 Month",
    "1-3-months": "1-3 Months",
    "3-6-months": "3-6 Months",
    "flexible": "Flexible",
}
BUDGET_NAMES = {
    "under-2k": "Under $2,000",
    "2k-5k": "$2,000 - $5,000",
    "2.5k-5k": "$2,500 - $5,000",
    "5k-10k": "$5,000 - $10,000",
    "10k-25k": "$10,000 - $25,000",
    "25k+": "$25,000+",
}
PROJECT_TYPE_NAMES = {
    "simple-site": "Simple Website",
    "business-site": "Business Website",
    "portfolio": "Portfolio Website",
    "e-commerce": "E-commerce Store",
    "ecommerce": "E-commerce Store",
    "web-app": "Web Application",
    "browser-extension": "Browser Extension",
    "other": "Custom Project",
}
CONTRACT_TERMS = (
    "All work remains the property of the Service Provider until final payment is received.",
    "The Client will provide content, feedback and approvals in a timely manner.",
    "Changes outside the agreed scope are quoted and billed separately.",
    "Either party may terminate this agreement with written notice; completed work is billed.",
    "The Service Provider may display the finished project in its portfolio unless agreed otherwise.",
)


# ------------------------------------------------------------------------------
# Formatting helpers
# ------------------------------------------------------------------------------
def format_currency(value: Optional[float]) -> str:
    amount = float(value or 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _to_datetime(value: DateLike) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date(value: Optional[DateLike], default: str = "N/A") -> str:
    """Long US date ("January 5, 2026"); unparseable strings pass through."""
    if value is None or value == "":
        return default
    parsed = _to_datetime(value)
    if parsed is None:
        return str(value)
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def title_words(value: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), (value or "").replace("-", " "))


def format_project_type(value: str) -> str:
    return PROJECT_TYPE_NAMES.get(value, title_words(value))


def format_timeline(value: str) -> str:
    return TIMELINE_NAMES.get(value, value)


def format_budget(value: str) -> str:
    return BUDGET_NAMES.get(value, value)


def format_maintenance(value: Optional[str]) -> str:
    if not value:
        return "None"
    return MAINTENANCE_NAMES.get(value, value)


def format_tier(value: str) -> str:
    return TIER_NAMES.get(value, value.upper())


def single_line(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _header(title: str) -> list[b.Block]:
    return [b.BrandHeader(title), b.Divider(rule=True)]


def _client_lines(*values: Optional[str]) -> tuple[str, ...]:
    return tuple(single_line(v) for v in values if v and single_line(v))


def _spread(label: str, value: str, **kwargs) -> b.LabelValue:
    return b.LabelValue(label, value, style="spread", indent=TOTALS_INDENT, **kwargs)


# ------------------------------------------------------------------------------
# Assemblers
# ------------------------------------------------------------------------------
def assemble_invoice(data: InvoiceData, business: BusinessInfo) -> list[b.Block]:
    content: list[b.Block] = [
        b.RunningHeader(f"Invoice {data.invoice_number} (continued)"),
        b.PageFooter(("Thank you for your business!", business.footer_line())),
        *_header("INVOICE"),
    ]

    details = [
        ("INVOICE #:", data.invoice_number),
        ("INVOICE DATE:", format_date(data.issued_date)),
        ("DUE DATE:", format_date(data.due_date, default="Upon Receipt")),
    ]
    if data.project_id is not None:
        details.append(("PROJECT #:", f"#{data.project_id}"))
    content.append(b.InfoColumns(
        left_title="BILL TO:",
        left_lines=_client_lines(
            data.client_name,
            data.client_company,
            data.client_address,
            data.client_city_state_zip,
            data.client_email,
            data.client_phone,
        ),
        right_pairs=tuple(details),
    ))

    if data.is_deposit:
        share = f" ({data.deposit_percentage:g}% of project total)" if data.deposit_percentage else ""
        content.append(b.Paragraph(f"**Deposit Invoice**{share}"))

    rows = []
    for item in data.line_items:
        description = "\n".join([single_line(item.description)] + [f"• {single_line(d)}" for d in item.details])
        rows.append((description, f"{item.quantity:g}", format_currency(item.rate), format_currency(item.amount)))
    content.append(b.Table(
        header=("DESCRIPTION", "QTY", "RATE", "AMOUNT"),
        rows=tuple(rows),
        alignments=("left", "center", "right", "right"),
        column_widths=(None, 50.0, 80.0, 90.0),
        repeat_header=True,
    ))

    content.append(_spread("Subtotal:", format_currency(data.subtotal)))
    if data.discount > 0:
        content.append(_spread("Discount:", format_currency(-data.discount)))
    if data.tax > 0:
        content.append(_spread("Tax:", format_currency(data.tax)))
    if data.credits:
        content.append(_spread("DEPOSIT CREDITS APPLIED:", ""))
        for credit in data.credits:
            content.append(_spread(f"Deposit {credit.deposit_invoice_number}", format_currency(-credit.amount)))

    total_label = "AMOUNT DUE:" if (data.total_credits or 0) > 0 else "TOTAL:"
    content.append(_spread(total_label, format_currency(data.amount_due), emphasis=True, rule_above=2.0))
    content.append(_spread("", "Amount Due (USD)"))
    content.append(b.Spacer(12))

    if data.notes:
        content += [b.Heading(4, "Notes"), b.Paragraph(data.notes)]
    if data.terms:
        content += [b.Heading(4, "Terms"), b.Paragraph(data.terms)]

    content.append(b.Heading(4, "PAYMENT INSTRUCTIONS"))
    instructions = ["Payment due within 30 days of invoice date"]
    if business.zelle_email:
        instructions.append(f"Zelle: {business.zelle_email}")
    if business.venmo_handle:
        instructions.append(f"Venmo: {business.venmo_handle}")
    instructions.append("Bank transfer details available upon request")
    content += [b.BulletItem(line, size=9, muted=True) for line in instructions]
    return content


def assemble_proposal(data: ProposalData, business: BusinessInfo) -> list[b.Block]:
    content: list[b.Block] = [
        b.RunningHeader(f"Proposal - {data.project_name} (continued)"),
        b.PageFooter((
            "This proposal is valid for 30 days from the date above.",
            f"Questions? Contact us at {business.email}",
        )),
        *_header("PROPOSAL"),
        b.InfoColumns(
            left_title="Prepared For:",
            left_lines=_client_lines(data.client_name, data.company_name, data.client_email),
            right_pairs=(("Prepared By:", business.name), ("Date:", format_date(data.created_at))),
        ),
        b.Heading(2, "Project Details"),
        b.LabelValue("Project", data.project_name),
    ]
    if data.project_type:
        content.append(b.LabelValue("Project Type", title_words(data.project_type)))

    content += [
        b.Heading(2, "Selected Package"),
        b.Paragraph(f"**{format_tier(data.selected_tier)} Tier**", size=12),
        b.Paragraph(f"Base Price: {format_currency(data.base_price)}"),
    ]
    if data.included_features:
        content.append(b.Heading(4, "Included Features:"))
        content += [b.BulletItem(f.name) for f in data.included_features]
    if data.addons:
        content.append(b.Heading(4, "Add-Ons:"))
        content += [b.BulletItem(f"{f.name} - {format_currency(f.price)}") for f in data.addons]
    if data.maintenance_option:
        content += [b.Heading(4, "Maintenance Plan:"), b.Paragraph(format_maintenance(data.maintenance_option))]

    content += [b.Heading(2, "Pricing Summary"), b.LabelValue("Base Package Price:", format_currency(data.base_price), style="spread")]
    if data.addons:
        content.append(b.LabelValue("Add-Ons:", format_currency(data.addons_total), style="spread"))
    content.append(b.LabelValue("Total:", format_currency(data.total), style="spread", emphasis=True, rule_above=1.0))

    if data.client_notes:
        content += [b.Heading(4, "Client Notes:"), b.Paragraph(data.client_notes)]
    return content


def _contract_fallback(data: ContractData, business: BusinessInfo) -> list[b.Block]:
    agreement_date = format_date(data.signed_at or data.created_at)
    content: list[b.Block] = [
        b.Heading(2, "CONTRACT AGREEMENT"),
        b.Paragraph(
            f"This Agreement is made on {agreement_date} between {business.name} "
            f'("Service Provider") and {data.client_name} ("Client").'
        ),
        b.Heading(3, "1. Project Scope"),
        b.LabelValue("Project Name", data.project_name),
    ]
    if data.project_type:
        content.append(b.LabelValue("Project Type", title_words(data.project_type)))
    if data.description:
        content.append(b.LabelValue("Description", single_line(data.description)))

    content.append(b.Heading(3, "2. Timeline"))
    if data.start_date:
        content.append(b.LabelValue("Start Date", format_date(data.start_date)))
    if data.due_date:
        content.append(b.LabelValue("Target Completion", format_date(data.due_date)))
    if data.timeline:
        content.append(b.LabelValue("Estimated Timeline", data.timeline))

    content.append(b.Heading(3, "3. Payment Terms"))
    if data.price is not None:
        content.append(b.LabelValue("Total Project Cost", format_currency(data.price)))
    if data.deposit_amount is not None:
        content.append(b.LabelValue("Deposit Amount", format_currency(data.deposit_amount)))
    content.append(b.Paragraph(
        "Payment is due according to the agreed milestones. "
        "Final payment is due upon project completion and client approval."
    ))

    content.append(b.Heading(3, "4. Terms and Conditions"))
    content += [b.BulletItem(term) for term in CONTRACT_TERMS]

    content += [
        b.Heading(3, "5. Contact"),
        b.LabelValue("Service Provider", business.name),
        b.LabelValue("Email", business.email),
        b.LabelValue("Website", business.website),
        b.Spacer(6),
        b.LabelValue("Client", data.client_name),
        b.LabelValue("Email", data.client_email),
    ]
    if data.company_name:
        content.append(b.LabelValue("Company", data.company_name))
    return content


def assemble_contract(data: ContractData, business: BusinessInfo) -> list[b.Block]:
    content: list[b.Block] = [
        b.RunningHeader(f"Contract - {data.project_name} (continued)"),
        b.PageFooter(("Standard terms and conditions apply.", f"Questions? Contact us at {business.email}")),
    ]
    if data.watermark_label:
        content.append(b.Watermark(data.watermark_label))
    content += [
        *_header("CONTRACT"),
        b.InfoColumns(
            left_title="Client:",
            left_lines=_client_lines(data.client_name, data.company_name, data.client_email),
            right_pairs=(
                ("Service Provider:", business.name),
                ("Contract Date:", format_date(data.signed_at or data.created_at)),
            ),
        ),
    ]

    if data.content and data.content.strip():
        content += parse_markdown(data.content)
    else:
        content += _contract_fallback(data, business)

    content += [
        b.Spacer(10),
        b.Heading(3, "Signatures"),
        b.SignatureLine("Client Signature:", b.FieldKind.NONE if data.is_signed else b.FieldKind.TEXT),
        b.Paragraph(data.client_name, space_after=0),
        b.LabelValue("Date", format_date(data.signed_at, default=BLANK_DATE)),
        b.Spacer(10),
        b.SignatureLine("Provider Signature:", b.FieldKind.NONE if data.countersigned_at else b.FieldKind.TEXT),
        b.Paragraph(business.name, space_after=0),
        b.LabelValue("Date", format_date(data.countersigned_at, default=BLANK_DATE)),
    ]
    return content


def assemble_intake(data: IntakeData, business: BusinessInfo) -> list[b.Block]:
    client = data.client_info
    details = data.project_details
    display_name = client.company_name or client.name
    content: list[b.Block] = [
        b.RunningHeader(f"Intake - {display_name} (continued)"),
        b.PageFooter((business.footer_line(),)),
        *_header("INTAKE"),
        b.InfoColumns(
            left_title="PREPARED FOR:",
            left_lines=_client_lines(client.name, client.company_name, client.email),
            right_pairs=(
                ("DATE:", format_date(data.submitted_at)),
                ("PROJECT #:", f"#{data.project_id}" if data.project_id is not None else "N/A"),
            ),
        ),
        b.Heading(3, "Project Details"),
        b.LabelValue("Project Name", single_line(data.project_name)),
        b.LabelValue("Project Type", format_project_type(details.type)),
        b.LabelValue("Timeline", format_timeline(details.timeline)),
        b.LabelValue("Budget", format_budget(details.budget)),
    ]
    if details.design_level:
        content.append(b.LabelValue("Design Level", title_words(details.design_level)))

    content.append(b.Heading(3, "Project Description"))
    for part in (details.description or "").split("\n\n"):
        if part.strip():
            content.append(b.Paragraph(single_line(part)))

    if details.features:
        content.append(b.Heading(3, "Requested Features"))
        content += [b.BulletItem(title_words(feature)) for feature in details.features]

    tech = data.technical_info
    if tech and (tech.tech_comfort or tech.domain_hosting):
        content.append(b.Heading(3, "Technical Information"))
        if tech.tech_comfort:
            content.append(b.LabelValue("Technical Comfort", single_line(tech.tech_comfort)))
        if tech.domain_hosting:
            content.append(b.LabelValue("Domain/Hosting", single_line(tech.domain_hosting)))

    if data.additional_info:
        content += [b.Heading(3, "Additional Information"), b.Paragraph(single_line(data.additional_info))]
    return content


def assemble_markdown(data: MarkdownData, business: BusinessInfo) -> list[b.Block]:
    return [
        b.PageFooter((business.footer_line(),)),
        b.BrandHeader(centered=True),
        b.Divider(rule=True),
        *parse_markdown(data.content),
    ]


# ------------------------------------------------------------------------------
# Dispatch
# ------------------------------------------------------------------------------
Record = Union[InvoiceData, ProposalData, ContractData, IntakeData, MarkdownData]

TEMPLATES: dict[DocumentKind, tuple[type[BaseModel], Callable[[Any, BusinessInfo], list[b.Block]]]] = {
    DocumentKind.INVOICE: (InvoiceData, assemble_invoice),
    DocumentKind.PROPOSAL: (ProposalData, assemble_proposal),
    DocumentKind.CONTRACT: (ContractData, assemble_contract),
    DocumentKind.INTAKE: (IntakeData, assemble_intake),
    DocumentKind.MARKDOWN: (MarkdownData, assemble_markdown),
}

SUBJECTS = {
    DocumentKind.INVOICE: "Invoice",
    DocumentKind.PROPOSAL: "Project Proposal",
    DocumentKind.CONTRACT: "Contract",
    DocumentKind.INTAKE: "Project Intake Form",
    DocumentKind.MARKDOWN: "Document",
}


def validate_record(kind: DocumentKind, data: Union[Record, Mapping[str, Any], str]) -> Record:
    """Coerce caller input into the record type for `kind`."""
    model, _ = TEMPLATES[kind]
    if isinstance(data, model):
        return data
    if kind == DocumentKind.MARKDOWN and isinstance(data, str):
        data = {"content": data}
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors())
        raise InputValidationError(
            f"invalid {kind.value} input: {fields}",
            errors=e.errors(include_url=False, include_context=False, include_input=False),
            document_kind=kind.value,
        ) from e


def assemble(kind: DocumentKind, record: Record, business: BusinessInfo) -> list[b.Block]:
    _, assembler = TEMPLATES[kind]
    return assembler(record, business)


def document_title(kind: DocumentKind, record: Record, business: BusinessInfo) -> str:
    if isinstance(record, InvoiceData):
        return f"Invoice {record.invoice_number}"
    if isinstance(record, ProposalData):
        return f"Proposal - {record.project_name}"
    if isinstance(record, ContractData):
        return f"Contract - {record.project_name}"
    if isinstance(record, IntakeData):
        client = record.client_info.company_name or record.client_info.name
        return f"{business.name} Intake - {client}"
    return record.title


def build_metadata(
    kind: DocumentKind,
    record: Record,
    business: BusinessInfo,
    created_at: Optional[datetime] = None,
) -> DocumentMetadata:
    values: dict[str, Any] = {
        "title": document_title(kind, record, business),
        "author": business.name,
        "subject": SUBJECTS[kind],
        "creator": business.name,
        "keywords": (kind.value, business.name),
    }
    if created_at is not None:
        values["created_at"] = created_at
    return DocumentMetadata(**values)
