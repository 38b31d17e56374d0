#!/usr/bin/env python3
"""
HLR Lookup Assistant Gateway
Simple startup script for the API server
"""

import uvicorn

if __name__ == "__main__":
    print("Starting HLR Lookup Assistant Gateway...")
    print("Chat endpoint: http://localhost:8000/api/chat")
    print("Health Check: http://localhost:8000/api/health")
    uvicorn.run("chat_gateway.main:app", host="0.0.0.0", port=8000, reload=True)
