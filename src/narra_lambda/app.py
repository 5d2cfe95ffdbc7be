"""Single Lambda entry point serving every Narra API endpoint."""

import narra_lambda.handlers
from narra_lambda.common.api.resolver import ApiResolverBuilder

builder = ApiResolverBuilder()
builder.add_handlers(narra_lambda.handlers)

handler = builder.get_lambda_handler()
