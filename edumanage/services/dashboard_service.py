"""
Dashboard aggregation over leads, students, courses and payments.
"""
from __future__ import annotations

import logging
from typing import List

from edumanage.models import (Activity, ActivityType, BatchStatus, ChartPoint,
                              DashboardOverview, DashboardStats,
                              EnrollmentStatus, LeadReply, PaymentStatus)
from edumanage.services.common import parse_datetime, percentage
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

GOOD_PERFORMANCE_THRESHOLD = 70
RECENT_ACTIVITY_LIMIT = 10


def get_stats() -> DashboardStats:
    """Headline counts for the dashboard cards and the funnel chart."""
    total = store.count(Collection.STUDENTS)
    leads = store.count(Collection.STUDENTS, {"is_admitted": False})
    admitted = store.count(Collection.STUDENTS, {"is_admitted": True})
    interested = store.count(Collection.STUDENTS, {"reply": LeadReply.INTERESTED.value})
    pending = store.count(Collection.STUDENTS, {"remind": True})

    success_rate = percentage(admitted, total)
    return DashboardStats(
        total_students=total,
        lead_count=leads,
        admitted_count=admitted,
        interested_count=interested,
        pending_reminders=pending,
        success_rate=success_rate,
        overall_performance="A" if success_rate > GOOD_PERFORMANCE_THRESHOLD else "B",
        student_data=[
            ChartPoint(name="Leads", count=leads),
            ChartPoint(name="Admitted", count=admitted),
            ChartPoint(name="Interested", count=interested),
            ChartPoint(name="Pending", count=pending),
        ],
    )


def _recent_activity() -> List[Activity]:
    activity: List[Activity] = []
    for record in store.find(Collection.STUDENTS):
        activity.append(Activity(
            type=ActivityType.LEAD_CREATED,
            description=f"New lead {record['name']}",
            at=parse_datetime(record["created_at"]),
            reference_id=record["id"],
        ))
        if record.get("admitted_at"):
            activity.append(Activity(
                type=ActivityType.ADMISSION,
                description=f"{record['name']} admitted as {record.get('student_id')}",
                at=parse_datetime(record["admitted_at"]),
                reference_id=record["id"],
            ))
    for enrollment in store.find(Collection.ENROLLMENTS):
        activity.append(Activity(
            type=ActivityType.ENROLLMENT,
            description=f"Enrollment in batch {enrollment['batch_id']}",
            at=parse_datetime(enrollment["created_at"]),
            reference_id=enrollment["id"],
        ))
    for payment in store.find(Collection.PAYMENTS):
        activity.append(Activity(
            type=ActivityType.PAYMENT,
            description=f"Payment {payment['receipt_number']} of {payment['amount']:.2f}",
            at=parse_datetime(payment["created_at"]),
            reference_id=payment["id"],
        ))
    activity.sort(key=lambda item: item.at, reverse=True)
    return activity[:RECENT_ACTIVITY_LIMIT]


def get_overview() -> DashboardOverview:
    completed = store.find(Collection.PAYMENTS, {"status": PaymentStatus.COMPLETED.value})
    revenue = round(sum(float(p["amount"]) for p in completed), 2)

    outstanding = 0.0
    for enrollment in store.find(Collection.ENROLLMENTS):
        if enrollment.get("status") == EnrollmentStatus.DROPPED.value:
            continue
        outstanding += max(float(enrollment["final_amount"]) - float(enrollment.get("paid_amount") or 0), 0)

    live_batches = store.count(Collection.BATCHES, {"status": BatchStatus.ONGOING.value}) + store.count(
        Collection.BATCHES, {"status": BatchStatus.UPCOMING.value}
    )
    return DashboardOverview(
        stats=get_stats(),
        revenue_collected=revenue,
        outstanding_fees=round(outstanding, 2),
        course_count=store.count(Collection.COURSES),
        active_batch_count=live_batches,
        enrollment_count=store.count(Collection.ENROLLMENTS, {"status": EnrollmentStatus.ACTIVE.value}),
        recent_activity=_recent_activity(),
    )
