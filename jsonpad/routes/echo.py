from flask import request
from flask.views import MethodView
from flask_smorest import Blueprint

blp = Blueprint(
    "Echo",
    __name__,
    url_prefix="/echo",
    description="Reflect the query string received by the application",
)


@blp.route("", strict_slashes=False)
class EchoController(MethodView):
    def get(self):
        """
        Return the query arguments as seen after the JSON-P stage stripped
        its own parameters.
        """
        return {
            "args": request.args.to_dict(flat=False),
            "query_string": request.query_string.decode("latin-1"),
        }
