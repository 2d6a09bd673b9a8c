"""
DeployWatch

Chat bot answering "what is currently deployed where?" from the
per-environment deployment documents stored in Elasticsearch.

Pipeline:
1. Parse the command arguments (environment, project, ext flag)
2. Fetch every document stored for the environment
3. Merge the documents into one canonical record per project (and role)
4. Render a compact or extended reply, with a plain-text fallback

Usage:
    from deploywatch.common import load_config, ElasticsearchStore
    from deploywatch.lookup import DeploymentQueryService
    from deploywatch.bot import SlackDelivery
"""

__version__ = "0.1.0"
