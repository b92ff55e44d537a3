from mcp_explorer.cli import main

if __name__ == "__main__":
    main()
