from typing import Optional, Dict
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models_sqlalchemy import ReviewTarget

# ---------- Users & Auth ----------

# bcrypt only looks at the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72

def check_password_bytes(password: str) -> str:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return password

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: EmailStr
    role: str
    profile_image: Optional[str] = None
    created_at: datetime

class SignupResponse(BaseModel):
    message: str
    user: UserResponse

class LoginResponse(BaseModel):
    message: str
    token: str
    role: str

class Principal(BaseModel):
    """Identity decoded from a bearer token."""
    id: int
    role: str

class MessageResponse(BaseModel):
    message: str

class AdminDashboardResponse(BaseModel):
    message: str
    stats: Dict[str, int]

# ---------- Catalog ----------

class CityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=255)

class CityCreate(CityBase):
    pass

class CityResponse(CityBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class TourBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    location: str = Field(..., min_length=1, max_length=100)
    available_spots: int = Field(..., ge=0)
    image_url: Optional[str] = Field(None, max_length=255)

class TourCreate(TourBase):
    pass

class TourResponse(TourBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class HotelBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    rating: Optional[float] = Field(None, ge=0, le=5)
    price_per_night: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=255)

class HotelCreate(HotelBase):
    pass

class HotelResponse(HotelBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class RestaurantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    cuisine: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    rating: Optional[float] = Field(None, ge=0, le=5)
    average_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=255)

class RestaurantCreate(RestaurantBase):
    pass

class RestaurantResponse(RestaurantBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class HistoricalPlaceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    era: Optional[str] = Field(None, max_length=100)
    entry_fee: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    image_url: Optional[str] = Field(None, max_length=255)

class HistoricalPlaceCreate(HistoricalPlaceBase):
    pass

class HistoricalPlaceResponse(HistoricalPlaceBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class RecreationalPlaceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    entry_fee: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    image_url: Optional[str] = Field(None, max_length=255)

class RecreationalPlaceCreate(RecreationalPlaceBase):
    pass

class RecreationalPlaceResponse(RecreationalPlaceBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class TransportOptionBase(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    name: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    contact: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=255)

class TransportOptionCreate(TransportOptionBase):
    pass

class TransportOptionResponse(TransportOptionBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

# ---------- Bookings ----------

class BookingCreate(BaseModel):
    tour_id: int

class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    tour_id: int
    created_at: datetime

class MyBookingResponse(BookingResponse):
    tour_name: str
    location: str
    price: float

class AdminBookingResponse(BookingResponse):
    username: str
    email: EmailStr
    tour_name: str

class HotelBookingCreate(BaseModel):
    hotel_id: int
    check_in: date
    check_out: date
    guests: int = Field(1, ge=1)

class HotelBookingResponse(HotelBookingCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    created_at: datetime

class MyHotelBookingResponse(HotelBookingResponse):
    hotel_name: str
    city: str

# ---------- Reviews ----------

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
    type: ReviewTarget
    target_id: int

class ReviewResponse(ReviewCreate):
    id: int
    user_id: int
    username: str
    created_at: datetime

# ---------- AI assistant ----------

class AssistantRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)

class AssistantResponse(BaseModel):
    reply: str
