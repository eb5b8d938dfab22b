"""
stacks.lambda_stack — Relay Lambda, Function URL and encrypted logs.

Requires FLOW_SHARED_SECRET and SLACK_WEBHOOK_URL at synth time; they are
passed straight into the function environment.
"""

from __future__ import annotations

import os
from pathlib import Path

from aws_cdk import (
    BundlingOptions,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
)
from aws_cdk import aws_iam as iam
from aws_cdk import aws_kms as kms
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_logs as logs
from constructs import Construct
from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[2]

REQUIRED_ENV = ("FLOW_SHARED_SECRET", "SLACK_WEBHOOK_URL")

LOG_KEY_ACTIONS = [
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:DescribeKey",
]


def relay_code() -> lambda_.Code:
    """Package the relay and its dependencies with the Lambda build image."""
    return lambda_.Code.from_asset(
        str(REPO_ROOT),
        exclude=["infrastructure", "tests", "scripts", ".git", "**/__pycache__", "cdk.out"],
        bundling=BundlingOptions(
            image=lambda_.Runtime.PYTHON_3_12.bundling_image,
            command=[
                "bash",
                "-c",
                "pip install --no-cache-dir . -t /asset-output",
            ],
        ),
    )


class LambdaStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        code: lambda_.Code | None = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        for name in REQUIRED_ENV:
            if not os.environ.get(name):
                raise ValueError(f"{name} environment variable is required")

        # ============================================================
        # KMS key for CloudWatch Logs encryption
        # ============================================================
        log_encryption_key = kms.Key(
            self,
            "LogEncryptionKey",
            description="KMS key for encrypting CloudWatch logs",
            enable_key_rotation=True,
            policy=iam.PolicyDocument(
                statements=[
                    iam.PolicyStatement(
                        sid="Enable CloudWatch Logs",
                        principals=[
                            iam.ServicePrincipal(f"logs.{Stack.of(self).region}.amazonaws.com")
                        ],
                        actions=LOG_KEY_ACTIONS,
                        resources=["*"],
                    ),
                    iam.PolicyStatement(
                        sid="Enable IAM User Permissions",
                        principals=[iam.AccountRootPrincipal()],
                        actions=["kms:*"],
                        resources=["*"],
                    ),
                ]
            ),
        )

        # ============================================================
        # Relay function
        # ============================================================
        self.relay_function = lambda_.Function(
            self,
            "OrderNotificationHandler",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler="order_notification.handler.lambda_handler",
            code=code or relay_code(),
            timeout=Duration.seconds(30),
            memory_size=128,
            environment={
                "FLOW_SHARED_SECRET": os.environ["FLOW_SHARED_SECRET"],
                "SLACK_WEBHOOK_URL": os.environ["SLACK_WEBHOOK_URL"],
                "POWERTOOLS_SERVICE_NAME": "order-notification",
                "POWERTOOLS_LOGGER_LOG_EVENT": "false",
            },
            description="Shopify Flow webhook handler that posts to Slack",
        )

        # Lambda writes to /aws/lambda/<name>; owning the group here applies
        # the retention and encryption settings.
        logs.LogGroup(
            self,
            "OrderNotificationHandlerLogGroup",
            log_group_name=f"/aws/lambda/{self.relay_function.function_name}",
            retention=logs.RetentionDays.ONE_WEEK,
            encryption_key=log_encryption_key,
            removal_policy=RemovalPolicy.DESTROY,
        )

        # ============================================================
        # Public Function URL
        # ============================================================
        function_url = self.relay_function.add_function_url(
            auth_type=lambda_.FunctionUrlAuthType.NONE,
            cors=lambda_.FunctionUrlCorsOptions(
                allow_credentials=False,
                allowed_methods=[lambda_.HttpMethod.POST],
                allowed_origins=["*"],
                allowed_headers=["content-type", "authorization"],
            ),
        )
        self.function_url = function_url.url

        CfnOutput(
            self,
            "FunctionUrl",
            value=function_url.url,
            description="Lambda Function URL for Shopify Flow webhook",
        )
