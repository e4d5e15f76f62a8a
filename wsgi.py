"""
WSGI entry point for the Marker Coverage Service.

Used by Gunicorn and other WSGI servers in production/staging.

Usage:
    gunicorn -w 4 -b 0.0.0.0:5000 --timeout 120 wsgi:application
"""

from app import app

application = app

if __name__ == '__main__':
    import os
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    app.run(host='0.0.0.0', port=port, debug=debug)
