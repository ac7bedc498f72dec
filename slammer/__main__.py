from slammer.main import main

raise SystemExit(main())
