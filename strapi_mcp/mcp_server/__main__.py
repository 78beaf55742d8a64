from strapi_mcp.mcp_server import main

main()
