from tablesync.main import main

main()
