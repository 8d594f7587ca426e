"""
Domain constants for the library inventory scanner.

These values encode knowledge about the remote platform and the report
format. They don't change per deployment.

For runtime/deployment config, see config.settings.
"""
from __future__ import annotations


# =============================================================================
# REGIONS
# =============================================================================

REGIONS: dict[str, dict[str, str]] = {
    "us": {
        "graphql": "https://api.newrelic.com/graphql",
        "ui": "https://rpm.newrelic.com",
    },
    "eu": {
        "graphql": "https://api.eu.newrelic.com/graphql",
        "ui": "https://rpm.eu.newrelic.com",
    },
}


# =============================================================================
# ENTITY SEARCH
# =============================================================================

# Application-type APM services that are currently reporting
ENTITY_SEARCH_FILTER: str = "domain = 'APM' AND type = 'APPLICATION' AND reporting IS true"

# Module attributes that carry jar checksums
SHA1_ATTRIBUTE: str = "sha1Checksum"
SHA512_ATTRIBUTE: str = "sha512Checksum"

# Host identifiers in account-level module results look like "java:myhost:8080"
RUNTIME_PREFIXES: tuple[str, ...] = (
    "java",
    "dotnet",
    "nodejs",
    "node",
    "python",
    "ruby",
    "php",
    "go",
)


# =============================================================================
# REPORT
# =============================================================================

REPORT_COLUMNS: list[str] = [
    "accountId",
    "applicationId",
    "name",
    "agentVersion",
    "examinedInstances",
    "library",
    "libraryVersion",
    "librarySha1",
    "librarySha512",
    "nrUrl",
]

REPORT_FORMATS: tuple[str, ...] = ("csv", "json")


# =============================================================================
# EXIT CODES
# =============================================================================

EXIT_OK: int = 0
EXIT_AUTH_FAILURE: int = 1
EXIT_USAGE: int = 2
EXIT_CERTIFICATE: int = 5


# =============================================================================
# OPERATOR TEXT
# =============================================================================

INTRO_TEXT: str = """
This tool scans your New Relic account(s) for services that report usage
of a library, and writes a manifest listing each service together with the
library version and checksums reported by New Relic APM.

Results may contain false positives and false negatives. Use them to assist
your own investigation of supply chain composition; they are not proof of
non-vulnerability.

A New Relic *User* API key is required. Create or copy one at
https://one.newrelic.com/launcher/api-keys-ui.launcher

Scanning may take a while when you have many services.

Disclaimer: this tool is provided AS IS, without warranty of any kind. It
does not guarantee complete or accurate results, does not remediate any
vulnerability, and does not provide remediation advice.
"""

CERT_ERROR_HELP: str = """
The TLS certificate presented for the New Relic API could not be verified.
This usually means an HTTPS proxy with a self-signed or internal certificate
sits between you and the API.

CAUTION: someone could be intercepting your network traffic. The scan was
stopped before your API key was sent anywhere else.

If you are sure the proxy is trusted, point REQUESTS_CA_BUNDLE at a PEM file
containing the proxy's certificate chain and run the scan again:

\tREQUESTS_CA_BUNDLE=proxy-ca-root-cert.pem libscan
"""
