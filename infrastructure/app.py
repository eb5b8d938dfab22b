"""
infrastructure/app.py — CDK entry point for the order notification relay.

Usage:
    FLOW_SHARED_SECRET=... SLACK_WEBHOOK_URL=... cdk deploy

Both values may also come from infrastructure/.env.
"""

import os

import aws_cdk as cdk
from stacks.lambda_stack import LambdaStack

app = cdk.App()
LambdaStack(
    app,
    "ShopifyAIOpsLambdaStack",
    env=cdk.Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
    ),
)
app.synth()
