# module clubsphere.app
from clubsphere.app_setup.factory import create_app

# App globale
app = create_app()
