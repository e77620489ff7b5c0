"""OWASP Top 10 (2021) reference entries used to seed the vulnerability catalog."""

from typing import Dict, List

OWASP_TOP_10_2021: List[Dict] = [
    {
        "owasp_id": "A01:2021",
        "name": "Broken Access Control",
        "category": "Access Control",
        "description": "Restrictions on what authenticated users are allowed to do are not properly enforced, "
        "letting attackers reach unauthorized functionality or data.",
        "base_likelihood": 4,
        "base_impact": 5,
        "cwe_ids": ["CWE-200", "CWE-201", "CWE-352"],
        "remediation_guidance": "Deny by default, enforce record ownership server side and log access control failures.",
        "reference_links": ["https://owasp.org/Top10/A01_2021-Broken_Access_Control/"],
    },
    {
        "owasp_id": "A02:2021",
        "name": "Cryptographic Failures",
        "category": "Cryptography",
        "description": "Sensitive data is exposed through missing or weak encryption in transit or at rest.",
        "base_likelihood": 3,
        "base_impact": 5,
        "cwe_ids": ["CWE-259", "CWE-327", "CWE-331"],
        "remediation_guidance": "Classify data, encrypt it at rest and in transit with current algorithms "
        "and manage keys properly.",
        "reference_links": ["https://owasp.org/Top10/A02_2021-Cryptographic_Failures/"],
    },
    {
        "owasp_id": "A03:2021",
        "name": "Injection",
        "category": "Input Validation",
        "description": "Untrusted data is sent to an interpreter as part of a command or query (SQL, OS, LDAP, XSS).",
        "base_likelihood": 3,
        "base_impact": 5,
        "cwe_ids": ["CWE-79", "CWE-89", "CWE-73"],
        "remediation_guidance": "Use parameterized queries, validate input server side and escape output.",
        "reference_links": ["https://owasp.org/Top10/A03_2021-Injection/"],
    },
    {
        "owasp_id": "A04:2021",
        "name": "Insecure Design",
        "category": "Design",
        "description": "Missing or ineffective control design leaves the application open to abuse.",
        "base_likelihood": 3,
        "base_impact": 4,
        "cwe_ids": ["CWE-209", "CWE-256", "CWE-501", "CWE-522"],
        "remediation_guidance": "Establish a secure development lifecycle with threat modeling and secure design patterns.",
        "reference_links": ["https://owasp.org/Top10/A04_2021-Insecure_Design/"],
    },
    {
        "owasp_id": "A05:2021",
        "name": "Security Misconfiguration",
        "category": "Configuration",
        "description": "Insecure default settings, open cloud storage, verbose errors or unnecessary features are enabled.",
        "base_likelihood": 4,
        "base_impact": 4,
        "cwe_ids": ["CWE-16", "CWE-611"],
        "remediation_guidance": "Apply a repeatable hardening process, remove unused features and review configurations.",
        "reference_links": ["https://owasp.org/Top10/A05_2021-Security_Misconfiguration/"],
    },
    {
        "owasp_id": "A06:2021",
        "name": "Vulnerable and Outdated Components",
        "category": "Supply Chain",
        "description": "Libraries, frameworks or platforms with known vulnerabilities are in use.",
        "base_likelihood": 4,
        "base_impact": 4,
        "cwe_ids": ["CWE-1104"],
        "remediation_guidance": "Maintain a component inventory, monitor advisories and patch on a defined schedule.",
        "reference_links": ["https://owasp.org/Top10/A06_2021-Vulnerable_and_Outdated_Components/"],
    },
    {
        "owasp_id": "A07:2021",
        "name": "Identification and Authentication Failures",
        "category": "Authentication",
        "description": "Weak authentication or session management allows credential stuffing, brute force or session hijacking.",
        "base_likelihood": 3,
        "base_impact": 5,
        "cwe_ids": ["CWE-297", "CWE-287", "CWE-384"],
        "remediation_guidance": "Implement multi-factor authentication, rate limit logins and rotate session identifiers.",
        "reference_links": ["https://owasp.org/Top10/A07_2021-Identification_and_Authentication_Failures/"],
    },
    {
        "owasp_id": "A08:2021",
        "name": "Software and Data Integrity Failures",
        "category": "Integrity",
        "description": "Code and infrastructure do not protect against integrity violations, e.g. unsigned updates "
        "or insecure deserialization.",
        "base_likelihood": 2,
        "base_impact": 5,
        "cwe_ids": ["CWE-829", "CWE-494", "CWE-502"],
        "remediation_guidance": "Verify signatures of software and data, secure the CI/CD pipeline and avoid "
        "deserializing untrusted data.",
        "reference_links": ["https://owasp.org/Top10/A08_2021-Software_and_Data_Integrity_Failures/"],
    },
    {
        "owasp_id": "A09:2021",
        "name": "Security Logging and Monitoring Failures",
        "category": "Monitoring",
        "description": "Insufficient logging and monitoring delays or prevents detection of active breaches.",
        "base_likelihood": 3,
        "base_impact": 3,
        "cwe_ids": ["CWE-117", "CWE-223", "CWE-532", "CWE-778"],
        "remediation_guidance": "Log security relevant events centrally, alert on suspicious activity and "
        "maintain an incident response plan.",
        "reference_links": ["https://owasp.org/Top10/A09_2021-Security_Logging_and_Monitoring_Failures/"],
    },
    {
        "owasp_id": "A10:2021",
        "name": "Server-Side Request Forgery",
        "category": "Input Validation",
        "description": "The application fetches a remote resource from a user supplied URL without validating it.",
        "base_likelihood": 2,
        "base_impact": 4,
        "cwe_ids": ["CWE-918"],
        "remediation_guidance": "Validate and allow-list destination URLs and segment outbound network access.",
        "reference_links": ["https://owasp.org/Top10/A10_2021-Server-Side_Request_Forgery_%28SSRF%29/"],
    },
]


def seed_vulnerability_catalog(model) -> int:
    """Upsert the catalog entries by ``owasp_id``; returns how many rows were new."""
    created_count = 0
    for item in OWASP_TOP_10_2021:
        defaults = {key: value for key, value in item.items() if key != "owasp_id"}
        _, created = model.objects.update_or_create(owasp_id=item["owasp_id"], defaults=defaults)
        created_count += int(created)
    return created_count
