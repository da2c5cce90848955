"""
Pydantic schemas for the invoke+decrypt secret protocol.

A remote function is invoked with an InvokeRequest and answers with an
InvokeResponse whose blob is ciphertext for a key-management decrypt call.
"""

import base64
from pydantic import BaseModel, ConfigDict, Field


class InvokeRequest(BaseModel):
    """Payload sent to the secret-vending function."""
    model_config = ConfigDict(populate_by_name=True)

    key_management_ref: str = Field(alias="keyManagementRef", description="Key used to encrypt the response")
    store_id: str = Field(alias="storeId", description="Secret store(s) to read from")
    keys: list[str] = Field(default_factory=list, description="Names the caller is allowed to receive")

    def to_payload(self) -> bytes:
        """Serialize using the wire (camelCase) field names."""
        return self.model_dump_json(by_alias=True).encode("utf-8")


class InvokeResponse(BaseModel):
    """Payload returned by the secret-vending function."""
    blob: str
    encoding: str = "base64"

    def decode(self) -> bytes:
        """
        Decode the blob into raw ciphertext bytes.

        Returns:
            Ciphertext ready for the key-management decrypt call

        Raises:
            ValueError: If the blob is not valid for its declared encoding
        """
        encoding = self.encoding.lower()
        try:
            if encoding == "base64":
                return base64.b64decode(self.blob, validate=True)
            if encoding == "hex":
                return bytes.fromhex(self.blob)
            return self.blob.encode(encoding)
        except (ValueError, LookupError) as e:
            raise ValueError(f"Cannot decode blob with encoding '{self.encoding}': {e}") from e
