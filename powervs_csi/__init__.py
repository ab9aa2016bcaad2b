"""Cloud model, provider-ID metadata, node reconciliation, multipath devices and options for a PowerVS block storage driver."""

__version__ = "0.1.0"