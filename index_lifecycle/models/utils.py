from botocore import config
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import boto3
import requests.utils
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from requests.models import PreparedRequest
from urllib.parse import urlparse


from index_lifecycle.models.client_options import ClientOptions


class ExitCode(Enum):
    SUCCESS = 0
    FAILURE = 1


def create_boto3_client(aws_service_name: str, region: Optional[str] = None,
                        client_options: Optional[ClientOptions] = None):
    client_config = None
    if client_options and client_options.user_agent_extra:
        client_config = config.Config(user_agent_extra=client_options.user_agent_extra)
    return boto3.client(aws_service_name, region_name=region, config=client_config)


def with_user_agent_extra(headers: Optional[Dict[str, str]], user_agent_extra: str) -> Dict[str, str]:
    """Return a copy of headers whose User-Agent ends with user_agent_extra."""
    adjusted_headers = dict(headers) if headers else {}
    user_agent = adjusted_headers.get("User-Agent", requests.utils.default_user_agent())
    adjusted_headers["User-Agent"] = f"{user_agent} {user_agent_extra}"
    return adjusted_headers


def as_name_list(value: Optional[str | Iterable[str]]) -> List[str]:
    """Normalize an index or type argument (a single name, a list of names, or nothing) into a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [v for v in value if v]


def merge_dicts(parts: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for part in parts:
        merged.update(part)
    return merged


class SigV4RequestSigner(requests.auth.AuthBase):
    """
    Signs requests with AWS Signature Version 4 for Amazon OpenSearch Service domains.

    Credentials are looked up for every request, so temporary credentials that are refreshed while a
    long reindex runs keep working.
    """

    def __init__(self, service: str, region: Optional[str]):
        self.service = service
        self.region = region
        self.session = boto3.Session()

    def __call__(self, r: PreparedRequest) -> PreparedRequest:
        # The port must not be part of the signed host.
        r.headers['Host'] = urlparse(r.url).hostname

        # Headers that requests may rewrite after signing are left out of the signature.
        unsigned_headers = requests.utils.default_headers().keys()
        signed_headers = {k: v for k, v in r.headers.items() if k.lower() not in unsigned_headers}
        aws_request = AWSRequest(method=r.method, url=r.url, data=r.body, headers=signed_headers)
        signer = SigV4Auth(self.session.get_credentials().get_frozen_credentials(), self.service, self.region)
        if aws_request.body is not None:
            aws_request.headers['x-amz-content-sha256'] = signer.payload(aws_request)
        signer.add_auth(aws_request)
        r.headers.update(dict(aws_request.headers))
        return r
