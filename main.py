#!/usr/bin/env python3
"""
DAX Benchmark Application

Times basic DynamoDB operations against two interchangeable backends:
DynamoDB itself and a DAX cluster in front of it.

Features:
- create-table, put-item, get-item, query, scan and delete-table workloads
- Fixed 10x10 key grid and 25-iteration read loops for comparable results
- Region auto-detection from EC2 instance metadata
- Optional OpenTelemetry metrics export and JSON run summaries
- Environment variable and YAML/JSON configuration support
"""

from cli import cli

if __name__ == '__main__':
    cli()
