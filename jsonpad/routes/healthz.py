from flask.views import MethodView
from flask_smorest import Blueprint

blp = Blueprint(
    "Healthz",
    __name__,
    url_prefix="/healthz",
    description="Health check endpoint",
)


@blp.route("", strict_slashes=False)
class HealthzController(MethodView):
    def get(self):
        """
        Liveness probe, also usable from a script tag with ?callback=.
        """
        return {
            "ok": True,
            "message": "Service is healthy",
            "code": "HEALTHY",
        }
