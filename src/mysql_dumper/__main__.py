from mysql_dumper.cli import main

main()
