"""
Guidance text served by the help tool
"""

from typing import Optional

WORKFLOW_HELP = """# Signoz MCP Tools - Recommended Workflow

## 🚀 Getting Started

1. **test_connection** - Verify connectivity to your Signoz instance
   → Use this first to ensure your API key and URL are correct

2. **discover_log_attributes** - Explore available log fields
   → Essential for understanding what you can query
   → Shows real attribute names and sample values
   → Provides example queries based on your actual data

3. **query_logs** - Query logs with discovered attributes
   → Use the attribute names from step 2
   → Start with simple queries, then combine filters
   → Automatic pagination when results exceed limit

## 📊 For Metrics
- **discover_metrics** - List available metrics with activity stats
- **discover_metric_attributes** - Show labels for specific metrics
- **query_metrics** - Query metrics using builder queries with filtering and grouping

## 🔍 For Traces (Coming Soon)
- query_traces - Search distributed traces

## 💡 Tips
- Always run discover_log_attributes first in a new environment
- Use the exact attribute names shown in discovery
- Time ranges default to last hour if not specified
- Use relative times for convenience: '30m', '1h', '2d', 'now-15m'
- When pagination appears, use the provided 'end' parameter for next page"""

QUERIES_HELP = """# Query Syntax Guide

## Log Query Operators

**Basic Operators:**
- `=` - Exact match (e.g., level=error)
- `~` - Contains (e.g., body~timeout)
- `!=` - Not equals (e.g., level!=debug)
- `>`, `<`, `>=`, `<=` - Comparisons

**Combining Filters:**
- Use AND to combine (e.g., level=error AND service=api)

## Common Attribute Patterns

**Kubernetes Resources:**
- k8s.deployment.name
- k8s.namespace.name
- k8s.pod.name
- k8s.container.name

**Service Attributes:**
- service.name
- level (or severity_text)
- body (log message content)

## Time Ranges
- Relative: '30m', '1h', '2d' (X ago from now)
- Legacy: 'now-1h', 'now-15m' (still supported)
- ISO timestamps: '2024-01-20T10:00:00Z'
- Unix timestamps in milliseconds: 1705744800000"""

EXAMPLES_HELP = """# Example Queries

## Simple Queries

**Find logs from a specific deployment:**
```
query: "k8s.deployment.name=my-api"
```

**Find error logs:**
```
query: "level=error"
```

**Search log content:**
```
query: "body~database connection failed"
```

## Combined Queries

**Errors from specific service:**
```
query: "k8s.deployment.name=my-api AND level=error"
```

**Timeouts in production:**
```
query: "k8s.namespace.name=production AND body~timeout"
```

## With Time Ranges

**Last 15 minutes of errors:**
```
query: "level=error",
start: "now-15m"
```

**Specific time window:**
```
query: "service=api-gateway",
start: "2024-01-20T10:00:00Z",
end: "2024-01-20T11:00:00Z"
```"""

HELP_TOPICS = {
    "workflow": WORKFLOW_HELP,
    "queries": QUERIES_HELP,
    "examples": EXAMPLES_HELP,
}


def get_help_text(topic: Optional[str] = None) -> str:
    """Help for a topic; no topic means the workflow overview."""
    if not topic:
        return WORKFLOW_HELP
    return HELP_TOPICS.get(topic, "Use topic parameter: 'workflow', 'queries', or 'examples'")
