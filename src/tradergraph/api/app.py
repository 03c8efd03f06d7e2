"""
HTTP surface for the trader graph: /api/traders, /api/chains, /health, /memory.
"""
import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from tradergraph.config import settings
from tradergraph.config.chains import supported_chains
from tradergraph.core.errors import InvalidInputError, NoUpstreamActivityError
from tradergraph.core.models import TraderQuery
from tradergraph.io.schemas import graph_to_dict
from tradergraph.services.trader_graph_service import TraderGraphService

logger = logging.getLogger(__name__)


def create_app(service: Optional[TraderGraphService] = None) -> Flask:
    app = Flask(__name__)
    CORS(app)
    svc = service or TraderGraphService()
    app.config["TRADER_SERVICE"] = svc

    @app.route("/api/traders", methods=["GET"])
    def get_traders():
        address = request.args.get("address", "")
        time_key = request.args.get("time", "all")
        chain = request.args.get("chain", settings.DEFAULT_CHAIN)

        query = TraderQuery(address=address, time=time_key, chain=chain)
        try:
            result = svc.get_traders(query)
        except InvalidInputError as e:
            body = {"error": str(e)}
            if e.supported_chains:
                body["error"] = "Invalid chain parameter"
                body["supportedChains"] = e.supported_chains
            return jsonify(body), 400
        except NoUpstreamActivityError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            logger.exception("Error in /api/traders for chain %s", chain)
            return jsonify({
                "error": f"Failed to fetch trader data on {chain}",
                "details": str(e),
            }), 500

        return jsonify(graph_to_dict(result))

    @app.route("/api/chains", methods=["GET"])
    def get_chains():
        return jsonify({
            "supportedChains": supported_chains(),
            "defaultChain": settings.DEFAULT_CHAIN,
        })

    @app.route("/health", methods=["GET"])
    def health():
        return "OK", 200

    @app.route("/memory", methods=["GET"])
    def memory():
        return jsonify({
            "cacheStats": {
                "blockTimestampCacheSize": len(svc.block_cache),
                "requestCacheSize": len(svc.result_cache),
            }
        })

    return app


def main(port: int = settings.API_PORT) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL)
    app = create_app()
    logger.info("Multi-chain server running on port %s", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
