"""Top‑level package for the finance tracker.

The primary modules are:

* ``db`` – SQLite persistence for transactions, categories, budgets,
  goals and recurring templates
* ``analytics`` – monthly totals, category breakdowns, trends and
  spending velocity over a transaction DataFrame
* ``budgets``, ``health`` and ``insights`` – the budget-with-spending
  view, the financial health score and the smart insight rules
* ``store`` – request-scoped access to one user's data
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run finance_tracker/dashboard.py
```

or use ``run_dashboard.py`` at the repository root.
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from . import visualization  # noqa: F401  # re-exported for convenience

__all__ = ["analytics", "visualization"]
