# ==============================================================================
# run.py
# ------------------------------------------------------------------------------
# The main entry point to launch the Flask application.
# ==============================================================================

from scheme_manager import create_app, db
from scheme_manager.models import (AppSetting, CalculationRun, CategoryArticle, Distributor,
                                   SalesRecord, Scheme)

# Create the Flask application instance using the factory function
app = create_app()

@app.shell_context_processor
def make_shell_context():
    """Provides a shell context for the `flask shell` command."""
    return {
        'db': db,
        'AppSetting': AppSetting,
        'CalculationRun': CalculationRun,
        'CategoryArticle': CategoryArticle,
        'Distributor': Distributor,
        'SalesRecord': SalesRecord,
        'Scheme': Scheme
    }

if __name__ == '__main__':
    app.run(debug=True)
