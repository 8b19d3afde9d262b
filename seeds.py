from rentalledger import create_app
from rentalledger.services.common import _store
from rentalledger.services.user_service import UserService
from rentalledger.services.vehicle_service import VehicleService
from rentalledger.exceptions import ValidationError

SAMPLE_VEHICLES = [
    {
        "name": "Ford Mustang", "type": "sports", "price": 220, "image": "/img/Ford Mustang.png",
        "rating": 4.8, "description": "Iconic muscle with modern comfort and performance.",
    },
    {
        "name": "Land Cruiser", "type": "suv", "price": 190, "image": "/img/Land Cruiser.png",
        "rating": 4.6, "description": "Rugged capability with premium interior space.",
    },
    {
        "name": "City Glide", "type": "sedan", "price": 95, "image": "/img/City Glide.png",
        "rating": 4.4, "description": "Smooth daily driver with great mileage.",
    },
    {
        "name": "Volt Runner", "type": "electric", "price": 150, "image": "/img/Volt Runner.png",
        "rating": 4.7, "description": "Quiet, fast, and efficient electric experience.",
    },
    {
        "name": "Luxe Meridian", "type": "luxury", "price": 260, "image": "/img/Luxe Meridian.png",
        "rating": 4.9, "description": "Premium comfort with a refined ride.",
    },
]


def ensure_customer(users: UserService, email: str, password: str, name: str, phone: str):
    """Create the demo customer unless the email is already registered."""
    try:
        users.register(email, password, name, phone)
    except ValidationError:
        pass


def main():
    app = create_app()
    with app.app_context():
        store = _store()
        users = UserService(store)

        # ---- Admin / customer demo accounts ----
        users.ensure_admin(app.config["ADMIN_EMAIL"], app.config["ADMIN_PASSWORD"])
        ensure_customer(users, "customer@example.com", "Customer123", "Juan Dela Cruz", "09171234567")

        # ---- Demo vehicles (create only if none exist) ----
        catalog = VehicleService(store)
        if not catalog.list():
            for vehicle in SAMPLE_VEHICLES:
                catalog.create(vehicle)

        print("Seed complete.")
        print(f"Admin login:    {app.config['ADMIN_EMAIL']} / {app.config['ADMIN_PASSWORD']}")
        print("Customer login: customer@example.com / Customer123")


if __name__ == "__main__":
    main()
