"""
Database initialization script
Run this to create tables and seed a demo client and form
"""
from formdesk.core.database import engine, Base, SessionLocal
from formdesk.core.security import generate_api_key
from formdesk.models import Client, Form, FormOption, FormStep, UserSettings
from formdesk.services.field_catalog import empty_field, validate_field_list

DEMO_USER_ID = "demo-user"

DEMO_FIELDS = [
    ("sp_short_text", "Your name", True),
    ("sp_email", "Email address", True),
    ("sp_phone", "Phone number", False),
    ("sp_address", "Installation address", False),
    ("sp_multiple_choice", "What are you looking for?", True),
    ("sp_rating", "How did we do last time?", False),
    ("sp_file_upload", "Photos of the space", False),
]


def init_db():
    """Initialize database with tables"""
    print("Creating database tables...")
    import formdesk.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    print("✓ Tables created successfully")


def seed_data():
    """Seed a demo user, client and single-page form"""
    db = SessionLocal()

    try:
        print("\nSeeding demo data...")

        user_settings = db.query(UserSettings).filter(UserSettings.user_id == DEMO_USER_ID).first()
        if not user_settings:
            user_settings = UserSettings(user_id=DEMO_USER_ID, api_key=generate_api_key(), zapier_enabled=True)
            db.add(user_settings)
            print(f"✓ Demo API key created: {user_settings.api_key}")

        client = db.query(Client).filter(Client.user_id == DEMO_USER_ID).first()
        if not client:
            client = Client(
                user_id=DEMO_USER_ID,
                name="Demo Windows Ltd",
                client_email="owner@example.com",
                additional_emails=[],
                email_notifications_enabled=True,
            )
            db.add(client)
            db.flush()
            print("✓ Demo client created")

        form = db.query(Form).filter(Form.client_id == client.id).first()
        if not form:
            fields = []
            for order, (kind, label, required) in enumerate(DEMO_FIELDS):
                field = empty_field(kind, order)
                field.label = label
                field.is_required = required
                fields.append(field)
            validate_field_list(fields)

            form = Form(user_id=DEMO_USER_ID, client_id=client.id, name="Free Quote Request", form_type="single_page")
            for field in fields:
                step = FormStep(
                    title=field.label,
                    question_type=field.field_type.value,
                    is_required=field.is_required,
                    step_order=field.field_order,
                    scale_min=field.scale_min,
                    scale_max=field.scale_max,
                )
                for i, option in enumerate(field.options):
                    step.options.append(FormOption(label=option.label, option_order=i))
                form.steps.append(step)
            db.add(form)
            print(f"✓ Demo form created with {len(fields)} fields")

        db.commit()
        print("\n✓ Database seeded successfully!")

    except Exception as e:
        print(f"\n✗ Error seeding data: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    print("=" * 60)
    print("FormDesk - Database Initialization")
    print("=" * 60)

    init_db()
    seed_data()

    print("\n" + "=" * 60)
    print("Initialization complete!")
    print("=" * 60)
    print("\nYou can now access:")
    print("  - API: http://localhost:8000")
    print("  - API Docs: http://localhost:8000/docs")
    print("=" * 60)
