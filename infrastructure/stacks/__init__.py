"""
stacks — CDK stacks for the order notification relay.

LambdaStack: relay function, public Function URL, KMS-encrypted log group.
"""
