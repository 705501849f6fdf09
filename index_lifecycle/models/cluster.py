from typing import Any, Dict, NamedTuple, Optional, Tuple
from enum import Enum
import json
import logging
import threading

import boto3
from cerberus import Validator
import requests
import requests.auth
from requests.auth import HTTPBasicAuth
from index_lifecycle.models.client_options import ClientOptions
from index_lifecycle.models.schema_tools import contains_one_of
from index_lifecycle.models.utils import SigV4RequestSigner, create_boto3_client, with_user_agent_extra
from index_lifecycle.models.version import EngineGeneration, Version, detect_generation

requests.packages.urllib3.disable_warnings()  # ignore: type

logger = logging.getLogger(__name__)

AuthMethod = Enum("AuthMethod", ["NO_AUTH", "BASIC_AUTH", "SIGV4"])
HttpMethod = Enum("HttpMethod", ["GET", "POST", "PUT", "DELETE", "HEAD"])

DEFAULT_SIGV4_SERVICE = "es"
LOGGED_RESPONSE_LENGTH = 1000


def validate_basic_auth_options(field, value, error):
    has_user_pass = value.get("username") is not None and value.get("password") is not None
    has_user_secret = value.get("user_secret_arn") is not None

    if has_user_pass and has_user_secret:
        error(field, "Cannot provide both (username + password) and user_secret_arn")
    elif has_user_pass and "" in (value["username"], value["password"]):
        error(field, "Both username and password must be non-empty")
    elif not has_user_pass and not has_user_secret:
        error(field, "Must provide either (username + password) or user_secret_arn")


SCHEMA = {
    "cluster": {
        "type": "dict",
        "schema": {
            "endpoint": {"type": "string", "required": True},
            "allow_insecure": {"type": "boolean", "required": False},
            "version": {"type": "string", "required": False},
            "no_auth": {"nullable": True},
            "basic_auth": {
                "type": "dict",
                "schema": {
                    "username": {"type": "string", "required": False},
                    "password": {"type": "string", "required": False},
                    "user_secret_arn": {"type": "string", "required": False},
                },
                "check_with": validate_basic_auth_options
            },
            "sigv4": {
                "nullable": True,
                "type": "dict",
                "schema": {
                    "region": {"type": "string", "required": False},
                    "service": {"type": "string", "required": False}
                }
            },
        },
        "check_with": contains_one_of({auth.name.lower() for auth in AuthMethod})
    }
}


class AuthDetails(NamedTuple):
    username: str
    password: str


def credentials_from_secret(secret_arn: str, client_options: Optional[ClientOptions] = None) -> AuthDetails:
    """Read a username and password stored as a JSON object in AWS Secrets Manager."""
    client = create_boto3_client(aws_service_name="secretsmanager", client_options=client_options)
    secret_response = client.get_secret_value(SecretId=secret_arn)
    try:
        secret = json.loads(secret_response["SecretString"])
    except json.JSONDecodeError:
        raise ValueError(f"Expected secret {secret_arn} to be a JSON object with username and password fields")

    missing_keys = [k for k in ("username", "password") if k not in secret]
    if missing_keys:
        raise ValueError(f"Secret {secret_arn} is missing required key(s): {', '.join(missing_keys)}")
    return AuthDetails(username=secret["username"], password=secret["password"])


class Cluster:
    """
    HTTP access to one Elasticsearch 2.x or 5.x cluster.

    A Cluster is built once from configuration and shared by every component that talks to the engine,
    including the worker threads of a reindex. Basic auth credentials kept in Secrets Manager are fetched
    on the first request and reused afterwards.
    """

    config: Dict
    endpoint: str = ""
    version: Optional[Version] = None
    auth_type: Optional[AuthMethod] = None
    auth_details: Dict[str, Any]
    allow_insecure: bool = False
    client_options: Optional[ClientOptions] = None

    def __init__(self, config: Dict, client_options: Optional[ClientOptions] = None) -> None:
        logger.info(f"Initializing cluster with endpoint: {config.get('endpoint')}")
        v = Validator(SCHEMA)
        if not v.validate({'cluster': config}):
            raise ValueError("Invalid config file for cluster", v.errors)

        self.config = config
        self.endpoint = config["endpoint"].rstrip("/")
        self.version = Version.from_string(config["version"]) if config.get("version") else None
        self._generation = detect_generation(self.version)
        # Certificate checks only default on for https endpoints.
        self.allow_insecure = config.get("allow_insecure", not self.endpoint.startswith("https"))
        self.auth_type = next(auth for auth in AuthMethod if auth.name.lower() in config)
        self.auth_details = config.get(self.auth_type.name.lower()) or {}
        self.client_options = client_options
        self._credentials: Optional[AuthDetails] = None
        self._credentials_lock = threading.Lock()

    @property
    def generation(self) -> EngineGeneration:
        return self._generation

    def basic_auth_credentials(self) -> AuthDetails:
        if self.auth_type != AuthMethod.BASIC_AUTH:
            raise ValueError(f"Cluster at {self.endpoint} does not use basic auth")
        with self._credentials_lock:
            if self._credentials is None:
                if "user_secret_arn" in self.auth_details:
                    self._credentials = credentials_from_secret(self.auth_details["user_secret_arn"],
                                                                self.client_options)
                else:
                    self._credentials = AuthDetails(username=self.auth_details["username"],
                                                    password=self.auth_details["password"])
            return self._credentials

    def sigv4_signing_details(self, force_region: bool = False) -> Tuple[str, Optional[str]]:
        """
        Signing service name and region. With force_region, a region missing from the config is taken
        from the AWS environment, which needs credentials to be available.
        """
        service = self.auth_details.get("service", DEFAULT_SIGV4_SERVICE)
        region = self.auth_details.get("region")
        if region is None and force_region:
            region = boto3.session.Session().region_name
        return service, region

    def auth(self) -> Optional[requests.auth.AuthBase]:
        if self.auth_type == AuthMethod.BASIC_AUTH:
            return HTTPBasicAuth(*self.basic_auth_credentials())
        if self.auth_type == AuthMethod.SIGV4:
            return SigV4RequestSigner(*self.sigv4_signing_details(force_region=True))
        return None

    def call_api(self, path: str, method: HttpMethod = HttpMethod.GET, data=None, headers=None,
                 params: Optional[Dict[str, Any]] = None, timeout=None, session=None,
                 raise_error=True) -> requests.Response:
        """
        Send one request to the cluster. Error statuses raise requests.exceptions.HTTPError unless
        raise_error is False.
        """
        if self.client_options and self.client_options.user_agent_extra:
            headers = with_user_agent_extra(headers, self.client_options.user_agent_extra)

        r = (session or requests).request(
            method.name,
            f"{self.endpoint}{path}",
            verify=(not self.allow_insecure),
            params=params or {},
            auth=self.auth(),
            data=data,
            headers=headers,
            timeout=timeout
        )
        logger.info(f"{method.name} {self.endpoint}{path} returned {r.status_code}")
        logger.debug(f"Response body: {r.text[:LOGGED_RESPONSE_LENGTH]}")
        if raise_error:
            r.raise_for_status()
        return r


class NoClusterDefinedError(Exception):
    def __init__(self):
        super().__init__("Unable to continue without a cluster specified")
