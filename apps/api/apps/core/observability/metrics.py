"""
Metrics instrumentation wrapper around prometheus_client.
"""

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry for the sales ledger.
    
    Provides typed access to all application metrics.
    """
    
    def __init__(self):
        """Initialize metrics registry."""
        self._setup_metrics()
    
    def _create_counter(self, name, description, labels=None):
        """Create a counter metric."""
        return Counter(name, description, labels or [])
    
    def _create_histogram(self, name, description, labels=None, buckets=None):
        """Create a histogram metric."""
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])
    
    def _setup_metrics(self):
        """Setup all application metrics."""
        
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )
        
        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )
        
        # ===================================================================
        # Sales Metrics
        # ===================================================================
        self.sales_mutations_total = self._create_counter(
            'sales_mutations_total',
            'Sale mutations (create/update/delete/replace)',
            ['operation', 'result']
        )
        
        self.sales_mutation_duration_seconds = self._create_histogram(
            'sales_mutation_duration_seconds',
            'Duration of a sale mutation unit of work',
            ['operation'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )
        
        # ===================================================================
        # Stock Metrics
        # ===================================================================
        self.stock_ledger_operations_total = self._create_counter(
            'stock_ledger_operations_total',
            'Stock ledger counter operations',
            ['operation', 'result']  # allocate|release|adjust, success|insufficient
        )
        
        self.stock_insufficient_total = self._create_counter(
            'stock_insufficient_total',
            'Requests rejected for insufficient lot stock'
        )


# Global metrics instance
metrics = MetricsRegistry()
