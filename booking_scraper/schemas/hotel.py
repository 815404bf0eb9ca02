from pydantic import BaseModel, model_validator


class HotelSummary(BaseModel):
    name: str
    link: str | None = None  # canonicalized hotel page URL
    picture_url: str | None = None
    rating: float | None = None  # 0-10 scale (e.g. 8.4)
    reviews_count: int | None = None  # e.g. 1567
    location: str | None = None  # address and/or distance from centre
    price_per_night: str | None = None  # numeric string, e.g. "1234"
    currency: str | None = None  # ISO code, e.g. "USD"


class Coordinates(BaseModel):
    latitude: float | None = None
    longitude: float | None = None

    @model_validator(mode="after")
    def _both_or_neither(self) -> "Coordinates":
        if self.latitude is None or self.longitude is None:
            self.latitude = None
            self.longitude = None
        return self


class Room(BaseModel):
    name: str
    price: str | None = None
    currency: str | None = None


class Restaurant(BaseModel):
    name: str
    cuisine: str | None = None
    open_for: str | None = None
    ambience: str | None = None
    dietary_options: str | None = None


class NearbyPlace(BaseModel):
    name: str
    type: str | None = None  # prefix label such as "Restaurant" or "Train"
    code: str | None = None  # IATA code for airports
    distance: str | None = None  # e.g. "1.2 km"


class HotelDetail(BaseModel):
    url: str = ""
    name: str | None = None
    address: str | None = None
    city: str | None = None
    rating: float | None = None
    reviews_count: int | None = None
    rating_text: str | None = None  # e.g. "Very good"
    stars: int | None = None
    description: str | None = None
    main_photo: str | None = None
    photos: list[str] = []
    facilities: list[str] = []
    grouped_facilities: dict[str, list[str]] = {}
    restaurants: list[Restaurant] = []
    rooms: list[Room] = []
    checkin_time: str | None = None  # HH:MM
    checkout_time: str | None = None  # HH:MM
    coordinates: Coordinates = Coordinates()
    highlights: list[str] = []
    area_info: dict[str, list[NearbyPlace]] = {}
    languages_spoken: list[str] = []
    property_info: dict[str, str] = {}
