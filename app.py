import os
import sys

from mpesa_gateway import create_app
from mpesa_gateway.errors import ConfigError
from mpesa_gateway.extensions import db
from mpesa_gateway.utils.logger import get_logger

logger = get_logger('mpesa_gateway.startup')

try:
    app = create_app(os.getenv('FLASK_ENV', 'development'))
except ConfigError as e:
    logger.error(f'{e.message}')
    sys.exit(1)


@app.shell_context_processor
def make_shell_context():
    from mpesa_gateway.models import PaymentRequest
    from mpesa_gateway.stores import get_store
    return {
        'db': db,
        'PaymentRequest': PaymentRequest,
        'store': get_store()
    }


if __name__ == '__main__':
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=int(os.getenv('PORT', 8081)))
