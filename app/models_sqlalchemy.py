import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class ReviewTarget(str, enum.Enum):
    """Kinds of catalog rows a review can point at."""
    TOUR = "tour"
    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    HISTORICAL_PLACE = "historical_place"
    RECREATIONAL_PLACE = "recreational_place"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    profile_image = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    bookings = relationship("Booking", back_populates="user", cascade="all, delete-orphan")
    hotel_bookings = relationship("HotelBooking", back_populates="user", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")


class City(Base):
    __tablename__ = "cities"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)


class Tour(Base):
    __tablename__ = "tours"
    __table_args__ = (
        CheckConstraint("available_spots >= 0", name="ck_tours_available_spots"),
    )
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    location = Column(String(100), nullable=False, index=True)
    available_spots = Column(Integer, nullable=False, default=0)
    image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    bookings = relationship("Booking", back_populates="tour", cascade="all, delete-orphan")


class Hotel(Base):
    __tablename__ = "hotels"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    rating = Column(Float, nullable=True)
    price_per_night = Column(Float, nullable=True)
    image_url = Column(String(255), nullable=True)

    bookings = relationship("HotelBooking", back_populates="hotel", cascade="all, delete-orphan")


class Restaurant(Base):
    __tablename__ = "restaurants"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    cuisine = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    rating = Column(Float, nullable=True)
    average_price = Column(Float, nullable=True)
    image_url = Column(String(255), nullable=True)


class HistoricalPlace(Base):
    __tablename__ = "historical_places"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    era = Column(String(100), nullable=True)
    entry_fee = Column(Float, nullable=True)
    rating = Column(Float, nullable=True)
    image_url = Column(String(255), nullable=True)


class RecreationalPlace(Base):
    __tablename__ = "recreational_places"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    entry_fee = Column(Float, nullable=True)
    rating = Column(Float, nullable=True)
    image_url = Column(String(255), nullable=True)


class TransportOption(Base):
    __tablename__ = "transport_options"
    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False)  # taxi, train, bus, flight...
    name = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True)
    contact = Column(String(255), nullable=True)
    image_url = Column(String(255), nullable=True)


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tour_id = Column(Integer, ForeignKey("tours.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="bookings")
    tour = relationship("Tour", back_populates="bookings")


class HotelBooking(Base):
    __tablename__ = "hotel_bookings"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="hotel_bookings")
    hotel = relationship("Hotel", back_populates="bookings")


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    # (type, target_id) addresses a row in the table of that kind
    type = Column(String(30), nullable=False, index=True)
    target_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="reviews")


REVIEW_TARGET_MODELS = {
    ReviewTarget.TOUR: Tour,
    ReviewTarget.HOTEL: Hotel,
    ReviewTarget.RESTAURANT: Restaurant,
    ReviewTarget.HISTORICAL_PLACE: HistoricalPlace,
    ReviewTarget.RECREATIONAL_PLACE: RecreationalPlace,
}
