from poultrydesk import create_app

app = create_app()
