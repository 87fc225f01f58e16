#!/usr/bin/env python3
import logging

import aws_cdk as cdk
from cdn_assembly.config import CDN_AWS_ACCOUNT, CDN_AWS_REGION, CDN_LOG_LEVEL

from cdn_assembly.distribution_stack import StaticSiteDistributionStack


logging.basicConfig(
    level=CDN_LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = cdk.App()
StaticSiteDistributionStack(
    app,
    "StaticSiteDistributionStack",
    env=cdk.Environment(account=CDN_AWS_ACCOUNT, region=CDN_AWS_REGION),
)

app.synth()
