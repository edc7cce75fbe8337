"""Seed database with sample SOP documents. Drop-and-recreate tables on each run."""

from __future__ import annotations

import asyncio

from sop_rag.database import async_session, engine
from sop_rag.models.orm import Base, SopDocument, SopSection


def _document(
    title: str,
    description: str,
    department: str,
    sections: list[tuple[str, str]],
    status: str = "active",
) -> SopDocument:
    return SopDocument(
        title=title,
        description=description,
        department=department,
        status=status,
        sections=[
            SopSection(title=t, content=c, order_index=i)
            for i, (t, c) in enumerate(sections, start=1)
        ],
    )


DOCUMENTS = [
    _document(
        "Customer Service SOP",
        "Standardized guidelines for handling customer interactions across all "
        "approved communication channels.",
        "customer_service",
        [
            (
                "Purpose",
                "This document provides standardized guidelines for handling customer "
                "interactions to ensure consistent, professional, and efficient "
                "customer support across all approved communication channels.",
            ),
            (
                "Communication Channels",
                "In-app chat, Phone calls, Email, WhatsApp. Working hours: 8:00am - 9:00pm",
            ),
            (
                "Service Level Agreements",
                "Chat: First Response <=5 minutes, Resolution <=3 hours. Calls: 1-2 mins "
                "response, 5 mins resolution. Email: <=1 hour response, <=48 hours resolution.",
            ),
            (
                "Standard Issue Handling",
                "Step 1: Receive & confirm customer details. Step 2: Investigate system "
                "status, payment records, contact vendor/rider. Step 3: Resolve by "
                "applying company policy or escalate. Step 4: Close by confirming "
                "resolution and documenting outcome.",
            ),
            (
                "Refund Process",
                "Refund requests are verified against the order record, approved by a "
                "supervisor when above the agent limit, and the customer is told the "
                "refund status and expected timeline.",
            ),
            (
                "Escalation Matrix",
                "Payment failure -> Tech (48 hours). Vendor dispute -> Operations "
                "(Same day). Angry customer -> Relevant Stakeholder (Immediate).",
            ),
        ],
    ),
    _document(
        "Vendor Account Management SOP",
        "Vendor account management including performance standards, onboarding, "
        "complaint handling and promotions.",
        "vendor",
        [
            (
                "Performance Standards & KPIs",
                "Rating thresholds: 4.0. Prep time: Within 3 minutes. Acceptance SLA: "
                "Within 2 minutes. Cancellation threshold: <10/day.",
            ),
            (
                "Customer Complaint Handling",
                "Vendor notified within 24 hours. Response required: 2 hours (urgent), "
                "24 hours (standard).",
            ),
            (
                "Refund & Compensation Policy",
                "Vendor fault: Vendor bears refund/replacement cost. Options: "
                "Full/partial refund, Meal credits/vouchers, Replacement order.",
            ),
            (
                "Vendor Onboarding",
                "Agreement to Terms -> Information Submission -> Account Creation -> "
                "Shop Inspection -> Training and Orientation.",
            ),
        ],
    ),
    _document(
        "Comprehensive Rider Standard Operating Procedures",
        "Rider management covering onboarding, performance standards, payment and "
        "settlement, and order management.",
        "rider",
        [
            (
                "Order Acceptance Protocol",
                "Accept/reject within 30 seconds. Valid rejections: Outside zone, max "
                "capacity, safety concerns, end of shift.",
            ),
            (
                "Customer Unavailability Protocol",
                "15-minute wait rule: 3 phone calls, WhatsApp message, WhatsApp call, "
                "SMS. After 15 min: Contact manager, return to vendor if needed.",
            ),
            (
                "Problem Escalation",
                "Contact the manager for wrong orders, damaged food, unreachable "
                "customers, safety concerns, payment disputes or app malfunction.",
            ),
        ],
    ),
    _document(
        "Rider Safety Protocols",
        "Draft safety guidelines for delivery riders.",
        "rider",
        [("Night Deliveries", "Riders must wear reflective gear after 6pm.")],
        status="draft",
    ),
]


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        session.add_all(DOCUMENTS)
        await session.commit()

    sections = sum(len(d.sections) for d in DOCUMENTS)
    print(f"Seeded {len(DOCUMENTS)} documents with {sections} sections.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
