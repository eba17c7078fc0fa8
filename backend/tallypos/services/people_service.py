# Overview: Tenant, customer and worker creation plus lookup-only customer resolution.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Company, Customer, Worker
from ..validation import ConflictError, CustomerRef, ValidationError, parse_customer_ref
from .errors import CompanyNotFoundError, CustomerNotFoundError, WorkerNotFoundError


def create_company(name: str, tax_rate: float = 0.0, receipt_template: str = "template1") -> Company:
    if not name or not name.strip():
        raise ValidationError("name is required")
    existing = db.session.query(Company).filter(func.lower(Company.name) == name.strip().lower()).first()
    if existing:
        raise ConflictError(f"Company {name!r} already exists")

    company = Company(name=name.strip(), tax_rate=tax_rate, receipt_template=receipt_template)
    db.session.add(company)
    db.session.commit()
    return company


def require_company(company_id: int) -> Company:
    company = db.session.get(Company, company_id)
    if not company:
        raise CompanyNotFoundError(f"Company {company_id} not found")
    return company


def create_customer(
    company_id: int,
    name: str,
    company: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Customer:
    """
    Explicitly register a customer.

    Receipts never create customers on the fly; a receipt for an unknown
    customer fails with CustomerNotFoundError.
    """
    require_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")

    ref = CustomerRef(name=name.strip(), company=(company or "").strip() or None)
    try:
        find_customer(company_id, ref)
    except CustomerNotFoundError:
        pass
    else:
        raise ConflictError(f"Customer {ref.name!r} already exists")

    customer = Customer(
        company_id=company_id,
        name=ref.name,
        company=ref.company,
        phone=phone,
        email=email,
    )
    db.session.add(customer)
    db.session.commit()
    return customer


def create_worker(company_id: int, name: str, role: str = "worker") -> Worker:
    require_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")

    worker = Worker(company_id=company_id, name=name.strip(), role=role)
    db.session.add(worker)
    db.session.commit()
    return worker


def find_customer(company_id: int, ref: CustomerRef) -> Customer:
    """Case-insensitive exact match on (company, name) within the tenant."""
    query = db.session.query(Customer).filter(
        Customer.company_id == company_id,
        func.lower(Customer.name) == ref.name.strip().lower(),
    )
    if ref.company:
        query = query.filter(func.lower(Customer.company) == ref.company.strip().lower())
    else:
        query = query.filter(or_(Customer.company.is_(None), Customer.company == ""))

    customer = query.order_by(Customer.id.asc()).first()
    if not customer:
        label = f"{ref.company} - {ref.name}" if ref.company else ref.name
        raise CustomerNotFoundError("Customer not found", details={"customer": label})
    return customer


def resolve_customer(company_id: int, raw) -> Customer:
    """Lookup-only resolution from a {company, name} object or a "company - name" label."""
    return find_customer(company_id, parse_customer_ref(raw))


def require_worker(company_id: int, worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id) if worker_id is not None else None
    if not worker or worker.company_id != company_id:
        raise WorkerNotFoundError("Worker not found", details={"worker_id": worker_id})
    return worker


def list_customers(company_id: int) -> list[Customer]:
    return db.session.query(Customer).filter_by(
        company_id=company_id,
    ).order_by(Customer.company.asc(), Customer.name.asc()).all()


def list_workers(company_id: int) -> list[Worker]:
    return db.session.query(Worker).filter_by(
        company_id=company_id,
    ).order_by(Worker.name.asc()).all()
