"""Declarative row-visibility and status rules per entity kind.

Each entity kind maps every role to a scope that turns an access context
into a SQL predicate. The generic repository looks the scope up once; no
service re-implements the role switch.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import Table, or_, select
from sqlalchemy.sql.elements import ColumnElement

from clinicflow.core.access import AccessContext
from clinicflow.models import (
    appointments,
    doctors,
    equipment,
    health_metrics,
    lab_tests,
    medical_records,
    message_threads,
    messages,
    notifications,
    patients,
    payments,
    prescriptions,
    service_packages,
    services,
    staff,
    tasks,
    video_calls,
)
from clinicflow.schemas.users import Role


class EntityKind(str, Enum):
    """Entity kinds exposed through the generic repository."""

    APPOINTMENTS = "appointments"
    MEDICAL_RECORDS = "medical_records"
    PRESCRIPTIONS = "prescriptions"
    LAB_TESTS = "lab_tests"
    PAYMENTS = "payments"
    HEALTH_METRICS = "health_metrics"
    PATIENTS = "patients"
    DOCTORS = "doctors"
    STAFF = "staff"
    SERVICES = "services"
    SERVICE_PACKAGES = "service_packages"
    NOTIFICATIONS = "notifications"
    TASKS = "tasks"
    EQUIPMENT = "equipment"
    VIDEO_CALLS = "video_calls"
    MESSAGES = "messages"
    MESSAGE_THREADS = "message_threads"

    @property
    def label(self) -> str:
        """Human readable singular label used in error messages."""
        return _LABELS[self]


_LABELS = {
    EntityKind.APPOINTMENTS: "Appointment",
    EntityKind.MEDICAL_RECORDS: "Medical record",
    EntityKind.PRESCRIPTIONS: "Prescription",
    EntityKind.LAB_TESTS: "Lab test",
    EntityKind.PAYMENTS: "Payment",
    EntityKind.HEALTH_METRICS: "Health metric",
    EntityKind.PATIENTS: "Patient",
    EntityKind.DOCTORS: "Doctor",
    EntityKind.STAFF: "Staff member",
    EntityKind.SERVICES: "Service",
    EntityKind.SERVICE_PACKAGES: "Service package",
    EntityKind.NOTIFICATIONS: "Notification",
    EntityKind.TASKS: "Task",
    EntityKind.EQUIPMENT: "Equipment",
    EntityKind.VIDEO_CALLS: "Video call",
    EntityKind.MESSAGES: "Message",
    EntityKind.MESSAGE_THREADS: "Message thread",
}


class _NoRows:
    """Marker for a scope that can match nothing (missing profile)."""

    def __repr__(self) -> str:
        return "NO_ROWS"


NO_ROWS = _NoRows()

Predicate = ColumnElement[bool] | _NoRows | None


class Scope:
    """Row visibility rule for one role on one table."""

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        """Return the filter for ``ctx``; ``None`` means unfiltered."""
        raise NotImplementedError


class Everything(Scope):
    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        return None


class Denied(Scope):
    """The role may never see this kind."""

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        return NO_ROWS


class OwnProfile(Scope):
    """Rows whose ``column`` equals the caller's profile id."""

    def __init__(self, column: str, profile: str):
        self.column = column
        self.profile = profile

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        value = getattr(ctx, self.profile)
        if value is None:
            return NO_ROWS
        return table.c[self.column] == value


class ThroughParent(Scope):
    """Rows whose parent row (via ``fk``) is owned by the caller."""

    def __init__(self, fk: str, parent: Table, parent_column: str, profile: str):
        self.fk = fk
        self.parent = parent
        self.parent_column = parent_column
        self.profile = profile

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        value = getattr(ctx, self.profile)
        if value is None:
            return NO_ROWS
        owned = select(self.parent.c.id).where(self.parent.c[self.parent_column] == value)
        return table.c[self.fk].in_(owned)


class LinkedPatients(Scope):
    """Rows about patients the calling doctor has at least one appointment with."""

    def __init__(self, column: str):
        self.column = column

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        if ctx.doctor_id is None:
            return NO_ROWS
        linked = select(appointments.c.patient_id).where(appointments.c.doctor_id == ctx.doctor_id)
        return table.c[self.column].in_(linked)


class OwnUser(Scope):
    """Rows where any of ``columns`` references the caller's user id."""

    def __init__(self, *columns: str):
        self.columns = columns

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        return or_(*(table.c[column] == ctx.user_id for column in self.columns))


class Published(Scope):
    """Catalog rows flagged as visible to clinic users."""

    def __init__(self, flag: str):
        self.flag = flag

    def predicate(self, table: Table, ctx: AccessContext) -> Predicate:
        return table.c[self.flag].is_(True)


EVERYTHING = Everything()
DENIED = Denied()


def _clinic_wide(**overrides: Scope) -> dict[Role, Scope]:
    """Staff/admin see everything; patient/doctor default to denied."""
    scopes: dict[Role, Scope] = {
        Role.PATIENT: DENIED,
        Role.DOCTOR: DENIED,
        Role.STAFF: EVERYTHING,
        Role.ADMIN: EVERYTHING,
    }
    scopes.update({Role(role): scope for role, scope in overrides.items()})
    return scopes


@dataclass(frozen=True)
class EntityPolicy:
    """Everything the generic repository needs to know about one kind."""

    table: Table
    read: Mapping[Role, Scope]
    order_by: tuple[str, ...] = ("created_at",)
    descending: bool = True
    # status -> statuses reachable from it; None means any change is allowed
    transitions: Mapping[str, frozenset[str]] | None = None
    # role -> target statuses that role may set
    status_roles: Mapping[Role, frozenset[str]] = field(default_factory=dict)
    # ownership rule for writes when it differs from the read rule
    write: Mapping[Role, Scope] | None = None
    # target status -> timestamp column stamped on entering it
    status_timestamps: Mapping[str, str] = field(default_factory=dict)

    @property
    def versioned(self) -> bool:
        """Check if updates are guarded by a version column."""
        return "version" in self.table.c

    def scope_for(self, role: Role, *, writing: bool = False) -> Scope:
        """Return the scope for ``role``, denying roles the table omits."""
        rules = self.write if writing and self.write is not None else self.read
        return rules.get(role, DENIED)

    def allows(self, current: str, target: str) -> bool:
        """Check a status transition against the lifecycle."""
        if self.transitions is None:
            return current != target
        return target in self.transitions.get(current, frozenset())


def _statuses(*values: str) -> frozenset[str]:
    return frozenset(values)


_APPOINTMENT_STATUSES = _statuses("pending", "confirmed", "completed", "cancelled")

POLICIES: dict[EntityKind, EntityPolicy] = {
    EntityKind.APPOINTMENTS: EntityPolicy(
        table=appointments,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=OwnProfile("doctor_id", "doctor_id"),
        ),
        order_by=("appointment_date", "appointment_time"),
        transitions={
            "pending": _statuses("confirmed", "cancelled"),
            "confirmed": _statuses("completed", "cancelled"),
        },
        status_roles={
            Role.PATIENT: _statuses("cancelled"),
            Role.DOCTOR: _APPOINTMENT_STATUSES,
            Role.STAFF: _APPOINTMENT_STATUSES,
            Role.ADMIN: _APPOINTMENT_STATUSES,
        },
        status_timestamps={"cancelled": "cancelled_at", "completed": "completed_at"},
    ),
    EntityKind.MEDICAL_RECORDS: EntityPolicy(
        table=medical_records,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=OwnProfile("doctor_id", "doctor_id"),
        ),
    ),
    EntityKind.PRESCRIPTIONS: EntityPolicy(
        table=prescriptions,
        read=_clinic_wide(
            patient=ThroughParent("medical_record_id", medical_records, "patient_id", "patient_id"),
            doctor=ThroughParent("medical_record_id", medical_records, "doctor_id", "doctor_id"),
        ),
    ),
    EntityKind.LAB_TESTS: EntityPolicy(
        table=lab_tests,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=OwnProfile("doctor_id", "doctor_id"),
        ),
        transitions={"ordered": _statuses("completed")},
        status_roles={
            Role.STAFF: _statuses("completed"),
            Role.ADMIN: _statuses("completed"),
        },
        status_timestamps={"completed": "completed_at"},
    ),
    EntityKind.PAYMENTS: EntityPolicy(
        table=payments,
        read=_clinic_wide(
            patient=ThroughParent("appointment_id", appointments, "patient_id", "patient_id"),
            doctor=ThroughParent("appointment_id", appointments, "doctor_id", "doctor_id"),
        ),
        transitions={
            "pending": _statuses("paid", "failed", "cancelled"),
            "failed": _statuses("pending"),
        },
        status_roles={
            Role.STAFF: _statuses("pending", "paid", "failed", "cancelled"),
            Role.ADMIN: _statuses("pending", "paid", "failed", "cancelled"),
        },
        status_timestamps={"paid": "paid_at"},
    ),
    EntityKind.HEALTH_METRICS: EntityPolicy(
        table=health_metrics,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=LinkedPatients("patient_id"),
        ),
        order_by=("recorded_date", "created_at"),
    ),
    EntityKind.PATIENTS: EntityPolicy(
        table=patients,
        read=_clinic_wide(
            patient=OwnProfile("id", "patient_id"),
            doctor=LinkedPatients("id"),
        ),
        write=_clinic_wide(patient=OwnProfile("id", "patient_id")),
    ),
    EntityKind.DOCTORS: EntityPolicy(
        table=doctors,
        read=_clinic_wide(patient=EVERYTHING, doctor=EVERYTHING),
        write=_clinic_wide(doctor=OwnProfile("id", "doctor_id")),
    ),
    EntityKind.STAFF: EntityPolicy(
        table=staff,
        read=_clinic_wide(),
        write={Role.ADMIN: EVERYTHING},
    ),
    EntityKind.SERVICES: EntityPolicy(
        table=services,
        read=_clinic_wide(patient=Published("is_available"), doctor=Published("is_available")),
        order_by=("display_order", "name"),
        descending=False,
    ),
    EntityKind.SERVICE_PACKAGES: EntityPolicy(
        table=service_packages,
        read=_clinic_wide(patient=Published("is_active"), doctor=Published("is_active")),
        order_by=("display_order", "name"),
        descending=False,
    ),
    EntityKind.NOTIFICATIONS: EntityPolicy(
        table=notifications,
        read={role: OwnUser("user_id") for role in Role},
    ),
    EntityKind.TASKS: EntityPolicy(
        table=tasks,
        read=_clinic_wide(doctor=OwnUser("assigned_to", "created_by")),
        transitions={
            "pending": _statuses("in_progress", "completed"),
            "in_progress": _statuses("completed"),
        },
        status_roles={
            Role.DOCTOR: _statuses("in_progress", "completed"),
            Role.STAFF: _statuses("in_progress", "completed"),
            Role.ADMIN: _statuses("in_progress", "completed"),
        },
        write=_clinic_wide(doctor=OwnUser("assigned_to")),
        status_timestamps={"completed": "completed_at"},
    ),
    EntityKind.EQUIPMENT: EntityPolicy(
        table=equipment,
        read=_clinic_wide(),
        order_by=("name",),
        descending=False,
        status_roles={
            Role.STAFF: _statuses("available", "in-use", "maintenance", "out-of-order"),
            Role.ADMIN: _statuses("available", "in-use", "maintenance", "out-of-order"),
        },
    ),
    EntityKind.VIDEO_CALLS: EntityPolicy(
        table=video_calls,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=OwnProfile("doctor_id", "doctor_id"),
        ),
        transitions={
            "scheduled": _statuses("ongoing", "cancelled"),
            "ongoing": _statuses("completed"),
        },
        # join/end have dedicated operations; the generic path only cancels
        status_roles={
            Role.STAFF: _statuses("cancelled"),
            Role.ADMIN: _statuses("cancelled"),
        },
    ),
    # Private to the two participants, whatever their role
    EntityKind.MESSAGES: EntityPolicy(
        table=messages,
        read={role: OwnUser("sender_id", "receiver_id") for role in Role},
        descending=False,
    ),
    EntityKind.MESSAGE_THREADS: EntityPolicy(
        table=message_threads,
        read=_clinic_wide(
            patient=OwnProfile("patient_id", "patient_id"),
            doctor=OwnProfile("doctor_id", "doctor_id"),
        ),
        order_by=("last_message_at",),
    ),
}


def policy_for(kind: EntityKind | str) -> EntityPolicy:
    """Look up the policy of an entity kind."""
    return POLICIES[EntityKind(kind)]
