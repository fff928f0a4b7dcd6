import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException, Depends, File, Query, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models_sqlalchemy as models
import models_pydantic as schemas
from auth import create_access_token, get_current_user, hash_password, require_admin, verify_password
from catalog import CATALOG_RESOURCES, build_catalog_router
from config import settings
from database import (
    check_db_connection, create_db_engine, create_session_factory, ensure_admin, get_db, init_db
)
from utils import LLMError, get_completion, setup_llm_client

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ASSISTANT_SYSTEM_PROMPT = (
    "You are SafarUz, a friendly travel assistant for tourists visiting Uzbekistan. "
    "Help with tours, hotels, restaurants, historical sites, transport and local customs. "
    "Keep answers concise and practical."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    with app.state.session_factory() as db:
        ensure_admin(db)
    yield
    logger.info("Shutting down, closing database connections")
    engine.dispose()


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

for resource in CATALOG_RESOURCES:
    app.include_router(build_catalog_router(resource))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ---------- Utility Functions ----------
def get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

def email_taken(db: Session, email: str, exclude_user_id: int = None) -> bool:
    query = db.query(models.User).filter(models.User.email == email)
    if exclude_user_id is not None:
        query = query.filter(models.User.id != exclude_user_id)
    return query.first() is not None

# ---------- Service Endpoints ----------
@app.get("/")
def root():
    return {"app": settings.APP_NAME, "version": settings.APP_VERSION, "status": "running"}

@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    db_ok = check_db_connection(db)
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
    }

# ---------- Auth Endpoints ----------
@app.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
@app.post("/register", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    if email_taken(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already in use")
    user = models.User(
        username=payload.username,
        email=payload.email,
        password=hash_password(payload.password),
        role=models.UserRole.USER.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already in use")
    db.refresh(user)
    logger.info(f"Registered user {user.id} ({user.email})")
    return {"message": "User registered successfully", "user": user}

@app.post("/login", response_model=schemas.LoginResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.password):
        logger.warning(f"Failed login for {payload.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = create_access_token(user.id, user.role)
    return {"message": "Login successful", "token": token, "role": user.role}

# ---------- Profile Endpoints ----------
@app.get("/profile", response_model=schemas.UserResponse)
def get_profile(principal: schemas.Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_user_or_404(db, principal.id)

@app.post("/profile", response_model=schemas.UserResponse)
def update_profile(
    profile_update: schemas.ProfileUpdate,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(db, principal.id)
    if profile_update.email and email_taken(db, profile_update.email, exclude_user_id=user.id):
        raise HTTPException(status_code=409, detail="Email already in use")
    if profile_update.username is not None:
        user.username = profile_update.username
    if profile_update.email is not None:
        user.email = profile_update.email
    db.commit()
    db.refresh(user)
    return user

@app.patch("/profile", response_model=schemas.MessageResponse)
def change_password(
    password_change: schemas.PasswordChange,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(db, principal.id)
    if not verify_password(password_change.current_password, user.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user.password = hash_password(password_change.new_password)
    db.commit()
    return {"message": "Password updated successfully"}

@app.delete("/profile", response_model=schemas.MessageResponse)
def delete_profile(principal: schemas.Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    user = get_user_or_404(db, principal.id)
    # Give back the spots held by this user's tour bookings
    for booking in user.bookings:
        db.execute(
            update(models.Tour)
            .where(models.Tour.id == booking.tour_id)
            .values(available_spots=models.Tour.available_spots + 1)
            .execution_options(synchronize_session=False)
        )
    db.delete(user)
    db.commit()
    logger.info(f"User {principal.id} deleted their account")
    return {"message": "Account deleted successfully"}

@app.post("/upload-profile")
def upload_profile_image(
    file: UploadFile = File(...),
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(db, principal.id)
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in settings.ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only image files are allowed")
    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File exceeds {settings.MAX_UPLOAD_SIZE_MB} MB")

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(settings.UPLOAD_DIR, filename), "wb") as out:
        out.write(content)

    user.profile_image = f"/uploads/{filename}"
    db.commit()
    return {"message": "Profile image uploaded successfully", "profile_image": user.profile_image}

# ---------- Tour Booking Endpoints ----------
@app.post("/bookings", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: schemas.BookingCreate,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_user_or_404(db, principal.id)
    tour = db.query(models.Tour).filter(models.Tour.id == booking.tour_id).first()
    if not tour:
        raise HTTPException(status_code=404, detail="Tour not found")
    # Take a spot only if one is left; the row count tells whether we got it
    result = db.execute(
        update(models.Tour)
        .where(models.Tour.id == booking.tour_id, models.Tour.available_spots > 0)
        .values(available_spots=models.Tour.available_spots - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.warning(f"User {principal.id} tried to book sold out tour {booking.tour_id}")
        raise HTTPException(status_code=400, detail="No available spots for this tour")
    db_booking = models.Booking(user_id=principal.id, tour_id=booking.tour_id)
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(f"User {principal.id} booked tour {booking.tour_id} (booking {db_booking.id})")
    return db_booking

@app.get("/my-bookings", response_model=List[schemas.MyBookingResponse])
def list_my_bookings(principal: schemas.Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(models.Booking, models.Tour)
        .join(models.Tour, models.Booking.tour_id == models.Tour.id)
        .filter(models.Booking.user_id == principal.id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )
    return [
        schemas.MyBookingResponse(
            id=b.id,
            user_id=b.user_id,
            tour_id=b.tour_id,
            created_at=b.created_at,
            tour_name=t.name,
            location=t.location,
            price=t.price
        )
        for b, t in rows
    ]

@app.delete("/bookings/{booking_id}", response_model=schemas.MessageResponse)
def cancel_booking(
    booking_id: int,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = db.query(models.Booking).filter(
        models.Booking.id == booking_id, models.Booking.user_id == principal.id
    ).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    db.execute(
        update(models.Tour)
        .where(models.Tour.id == booking.tour_id)
        .values(available_spots=models.Tour.available_spots + 1)
        .execution_options(synchronize_session=False)
    )
    db.delete(booking)
    db.commit()
    logger.info(f"User {principal.id} cancelled booking {booking_id}")
    return {"message": "Booking cancelled successfully"}

# ---------- Hotel Booking Endpoints ----------
@app.post("/hotel-bookings", response_model=schemas.HotelBookingResponse, status_code=status.HTTP_201_CREATED)
def create_hotel_booking(
    booking: schemas.HotelBookingCreate,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_user_or_404(db, principal.id)
    hotel = db.query(models.Hotel).filter(models.Hotel.id == booking.hotel_id).first()
    if not hotel:
        raise HTTPException(status_code=404, detail="Hotel not found")
    if booking.check_in >= booking.check_out:
        raise HTTPException(status_code=400, detail="check_out must be after check_in")
    db_booking = models.HotelBooking(
        user_id=principal.id,
        hotel_id=booking.hotel_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        guests=booking.guests
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(f"User {principal.id} booked hotel {booking.hotel_id} (hotel booking {db_booking.id})")
    return db_booking

@app.get("/my-hotel-bookings", response_model=List[schemas.MyHotelBookingResponse])
def list_my_hotel_bookings(principal: schemas.Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(models.HotelBooking, models.Hotel)
        .join(models.Hotel, models.HotelBooking.hotel_id == models.Hotel.id)
        .filter(models.HotelBooking.user_id == principal.id)
        .order_by(models.HotelBooking.check_in)
        .all()
    )
    return [
        schemas.MyHotelBookingResponse(
            id=b.id,
            user_id=b.user_id,
            hotel_id=b.hotel_id,
            check_in=b.check_in,
            check_out=b.check_out,
            guests=b.guests,
            created_at=b.created_at,
            hotel_name=h.name,
            city=h.city
        )
        for b, h in rows
    ]

@app.delete("/hotel-bookings/{booking_id}", response_model=schemas.MessageResponse)
def cancel_hotel_booking(
    booking_id: int,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = db.query(models.HotelBooking).filter(
        models.HotelBooking.id == booking_id, models.HotelBooking.user_id == principal.id
    ).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Hotel booking not found")
    db.delete(booking)
    db.commit()
    return {"message": "Hotel booking cancelled successfully"}

# ---------- Admin Endpoints ----------
@app.get("/admin", response_model=schemas.AdminDashboardResponse)
def admin_dashboard(admin: schemas.Principal = Depends(require_admin), db: Session = Depends(get_db)):
    stats = {
        "users": db.query(models.User).count(),
        "tours": db.query(models.Tour).count(),
        "bookings": db.query(models.Booking).count(),
        "hotel_bookings": db.query(models.HotelBooking).count(),
        "reviews": db.query(models.Review).count(),
    }
    return {"message": "Welcome, admin", "stats": stats}

@app.get("/users", response_model=List[schemas.UserResponse])
def list_users(admin: schemas.Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return db.query(models.User).order_by(models.User.id).all()

@app.get("/admin/bookings", response_model=List[schemas.AdminBookingResponse])
def list_all_bookings(admin: schemas.Principal = Depends(require_admin), db: Session = Depends(get_db)):
    rows = (
        db.query(models.Booking, models.User, models.Tour)
        .join(models.User, models.Booking.user_id == models.User.id)
        .join(models.Tour, models.Booking.tour_id == models.Tour.id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )
    return [
        schemas.AdminBookingResponse(
            id=b.id,
            user_id=b.user_id,
            tour_id=b.tour_id,
            created_at=b.created_at,
            username=u.username,
            email=u.email,
            tour_name=t.name
        )
        for b, u, t in rows
    ]

# ---------- Review Endpoints ----------
@app.post("/reviews", response_model=schemas.ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    review: schemas.ReviewCreate,
    principal: schemas.Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target_model = models.REVIEW_TARGET_MODELS[review.type]
    if not db.query(target_model).filter(target_model.id == review.target_id).first():
        raise HTTPException(status_code=404, detail=f"No {review.type.value} with id {review.target_id}")
    user = get_user_or_404(db, principal.id)
    db_review = models.Review(
        user_id=user.id,
        rating=review.rating,
        comment=review.comment,
        type=review.type.value,
        target_id=review.target_id
    )
    db.add(db_review)
    db.commit()
    db.refresh(db_review)
    return schemas.ReviewResponse(
        id=db_review.id,
        user_id=db_review.user_id,
        username=user.username,
        rating=db_review.rating,
        comment=db_review.comment,
        type=db_review.type,
        target_id=db_review.target_id,
        created_at=db_review.created_at
    )

@app.get("/reviews", response_model=List[schemas.ReviewResponse])
def list_reviews(
    target_type: models.ReviewTarget = Query(..., alias="type"),
    target_id: int = Query(..., alias="id"),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(models.Review, models.User.username)
        .join(models.User, models.Review.user_id == models.User.id)
        .filter(models.Review.type == target_type.value, models.Review.target_id == target_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )
    return [
        schemas.ReviewResponse(
            id=r.id,
            user_id=r.user_id,
            username=username,
            rating=r.rating,
            comment=r.comment,
            type=r.type,
            target_id=r.target_id,
            created_at=r.created_at
        )
        for r, username in rows
    ]

# ---------- AI Assistant ----------
@app.post("/ai-assistant", response_model=schemas.AssistantResponse)
def ai_assistant(payload: schemas.AssistantRequest, principal: schemas.Principal = Depends(get_current_user)):
    try:
        client, model_name, api_provider = setup_llm_client(model_name=settings.AI_MODEL)
        reply = get_completion(
            payload.prompt,
            client,
            model_name,
            api_provider,
            temperature=settings.AI_TEMPERATURE,
            system_prompt=ASSISTANT_SYSTEM_PROMPT,
        )
    except LLMError as e:
        logger.exception(f"AI assistant failed for user {principal.id}: {e}")
        raise HTTPException(status_code=500, detail="AI assistant is unavailable")
    return {"reply": reply}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_endpoints:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
