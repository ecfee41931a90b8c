"""Command line interface for checking configuration loading"""
from . import load_settings
from pathlib import Path

SECRET_KEYS = {'jwt_secret'}

def main():
    """Display loaded configuration"""
    settings = load_settings()

    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings.items():
        if key in SECRET_KEYS:
            value = '********'
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("""[DEFAULT]
# PostgreSQL (or CockroachDB) connection URL
db_url = postgresql://postgres@localhost:5432/skillswap
# Token signing; leave empty to generate a random secret on every start
jwt_secret =
token_expiry_days = 30
# Profile photo storage
upload_dir = uploads
max_upload_bytes = 5242880
# Paging
default_page_limit = 20
max_page_limit = 50
# Whether private profiles show up in skill-match results
include_private_in_matches = false
cors_origins = *
host = 0.0.0.0
port = 8000
log_level = INFO
""")
    print(f"\nWrote {examples_dir / 'settings.conf.example'}")

if __name__ == "__main__":
    main()
