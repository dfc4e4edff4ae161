# File: scripts/generate_hmac_headers.py
# Prints a curl command that opens a signing session with valid HMAC headers.
import argparse
import json
import os
import time

from dotenv import load_dotenv
from faker import Faker

from rhodesign.api.auth import sign_payload

load_dotenv()
faker = Faker()

parser = argparse.ArgumentParser(description="Generate HMAC headers for the RhodeSign API")
parser.add_argument("--contract_id", type=str, default=str(faker.random_int(1000, 9999)), help="Contract ID")
parser.add_argument("--signer_email", type=str, default=faker.email(), help="Signer email")
parser.add_argument("--title", type=str, default=f"{faker.company()} Banquet Contract", help="Contract title")
parser.add_argument("--base_url", type=str, default=os.getenv("PUBLIC_BASE_URL", "http://localhost:5000"))

args = parser.parse_args()

timestamp = str(int(time.time()))
body = json.dumps({
    "contractId": args.contract_id,
    "signerEmail": args.signer_email,
    "contractData": {"title": args.title},
}, separators=(",", ":"))
signature = sign_payload(os.environ["SIGNING_API_SECRET"], timestamp, body)

print(f"curl -X POST {args.base_url}/api/v1/signing/sessions \\")
print("  -H \"Content-Type: application/json\" \\")
print(f"  -H \"X-Timestamp: {timestamp}\" \\")
print(f"  -H \"X-Signature: {signature}\" \\")
print(f"  -d '{body}'")
