import logging

from flask import Blueprint, jsonify

from routes.decorators import api_login_required
from services.bucket_provisioner import storage_status

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/storage/status')
@api_login_required
def storage_check():
    """Report (and repair) the storage buckets the app depends on."""
    try:
        buckets = storage_status()
    except Exception as e:
        logger.exception(f"Storage check failed: {e}")
        return jsonify({'success': False, 'error': 'Storage check failed'}), 500

    return jsonify({
        'success': True,
        'message': 'Storage configuration check completed',
        'buckets': buckets,
    })
