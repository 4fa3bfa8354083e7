from app import create_app

app = create_app()

# gunicorn: gunicorn -w 2 wsgi:app
# Set RUN_SCHEDULER=1 on exactly one instance to run the holiday seed job
