"""
Tiffin Response Engine - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Float, DateTime, ForeignKey, Enum as SQLEnum, Boolean, Date,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS FOR THE RESPONSE LIFECYCLE
# =============================================================================

class MealType(str, Enum):
    """Meal slots a provider can serve."""
    LUNCH = "lunch"
    DINNER = "dinner"


class ResponseStatus(str, Enum):
    """Customer decision for one meal."""
    PENDING = "pending"
    YES = "yes"
    NO = "no"


class ResponseSource(str, Enum):
    """Provenance of the last status transition."""
    MANUAL = "manual"
    AUTO = "auto"
    CUSTOMER = "customer"


# Stored values are the lowercase enum values, matching the wire format
def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ProviderDB(Base):
    """Meal provider (mess / tiffin service). Identity only; managed elsewhere."""
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    meal_preferences = relationship("MealPreferenceDB", back_populates="provider", cascade="all, delete-orphan")
    customers = relationship("CustomerDB", back_populates="provider")


class MealPreferenceDB(Base):
    """
    Per-provider, per-meal service settings.
    The response engine only reads these rows.
    """
    __tablename__ = "meal_preferences"
    __table_args__ = (
        UniqueConstraint("provider_id", "meal_type", name="uq_meal_preference_provider_meal"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    provider_id = Column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    meal_type = Column(SQLEnum(MealType, values_callable=_enum_values), nullable=False)

    enabled = Column(Boolean, default=False, nullable=False)
    price = Column(Float, default=0.0, nullable=False)
    cutoff_time = Column(String(16), default="", nullable=False)  # "10:30 AM"

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    provider = relationship("ProviderDB", back_populates="meal_preferences")


class CustomerDB(Base):
    """Customer subscribed to a provider. Read-only for the response engine."""
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True)  # UUID
    provider_id = Column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    provider = relationship("ProviderDB", back_populates="customers")
    responses = relationship("MealResponseDB", back_populates="customer")


class MealResponseDB(Base):
    """
    One customer's answer for one meal on one date.
    Created pending when the order window opens; never deleted by the engine.
    """
    __tablename__ = "meal_responses"
    __table_args__ = (
        UniqueConstraint(
            "provider_id", "customer_id", "menu_date", "meal_type",
            name="uq_meal_response_slot",
        ),
        Index("ix_meal_responses_daily", "provider_id", "menu_date", "meal_type", "status"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    provider_id = Column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)

    menu_date = Column(Date, nullable=False)
    meal_type = Column(SQLEnum(MealType, values_callable=_enum_values), nullable=False)

    # State
    status = Column(
        SQLEnum(ResponseStatus, values_callable=_enum_values),
        default=ResponseStatus.PENDING,
        nullable=False,
    )
    response_received_at = Column(DateTime, nullable=True)
    source = Column(SQLEnum(ResponseSource, values_callable=_enum_values), nullable=True)  # NULL until first transition
    is_auto_detected = Column(Boolean, default=False, nullable=False)

    # Audit of the transition out of pending (set once)
    responded_before_cutoff = Column(Boolean, nullable=True)
    cutoff_time_used = Column(String(16), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("CustomerDB", back_populates="responses")
    transitions = relationship("ResponseTransitionLogDB", back_populates="response", cascade="all, delete-orphan")


class ResponseTransitionLogDB(Base):
    """
    Immutable log of response status transitions.
    Append-only - one row per successful transition.
    """
    __tablename__ = "response_transition_log"

    id = Column(String(36), primary_key=True)  # UUID
    response_id = Column(String(36), ForeignKey("meal_responses.id", ondelete="CASCADE"), nullable=False, index=True)

    # State Transition
    from_status = Column(SQLEnum(ResponseStatus, values_callable=_enum_values), nullable=False)
    to_status = Column(SQLEnum(ResponseStatus, values_callable=_enum_values), nullable=False)

    # Who / how
    source = Column(SQLEnum(ResponseSource, values_callable=_enum_values), nullable=False)
    actor_id = Column(String(36), nullable=True)  # provider or customer id; NULL for system

    # Cutoff context at the moment of this transition
    responded_before_cutoff = Column(Boolean, nullable=False)
    cutoff_time_used = Column(String(16), nullable=True)

    # Timestamps (immutable)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    response = relationship("MealResponseDB", back_populates="transitions")
